"""Bundled default prompt templates for the evaluation agents.

Placeholders use ``{{ name }}`` syntax and are filled by
``pitchcoach.services.prompt_service.render_prompt``. A file named
``<prompt>.txt`` in the configured prompt directory replaces the default of
the same name.
"""

# fmt: off
PROMPT_DEFAULTS: dict[str, str] = {
    "deck-agent": """You are an experienced startup pitch coach reviewing a slide deck.

Presenter context:
{{ context }}

Deck text:
{{ deckText }}

Critique the deck's narrative, structure, visuals, clarity and persuasiveness.
Scores are 0-100. Respond with a single JSON object of this shape:
{
  "overallScore": number,
  "narrative": {"score": number, "rationale": string, "evidence": [string]},
  "structure": {"score": number, "rationale": string, "evidence": [string]},
  "visuals": {"score": number, "rationale": string, "evidence": [string]},
  "clarity": {"score": number, "rationale": string, "evidence": [string]},
  "persuasiveness": {"score": number, "rationale": string, "evidence": [string]},
  "strengths": [string],
  "gaps": [string],
  "slideNotes": [{"slideNumber": number, "title": string, "feedback": string}]
}
""",

    "text-agent": """You are a presentation delivery coach reading a talk transcript.

Presenter context:
{{ context }}

Transcript:
{{ transcript }}

Evaluate clarity, pacing, confidence, engagement and vocal delivery as far as
the words allow. Scores are 0-100. Respond with a single JSON object:
{
  "overallScore": number,
  "clarity": {"score": number, "rationale": string, "evidence": [string]},
  "pacing": {"score": number, "rationale": string, "evidence": [string]},
  "confidence": {"score": number, "rationale": string, "evidence": [string]},
  "engagement": {"score": number, "rationale": string, "evidence": [string]},
  "vocalDelivery": {"score": number, "rationale": string, "evidence": [string]}
}
""",

    "audio-agent": """You are a speech coach assessing how a talk sounded.

Audio metadata:
{{ audioMeta }}

Audio summary:
{{ audioSummary }}

Transcript:
{{ transcript }}

Identify audible issues (filler words, pace changes, long silences, volume)
with timestamps where possible. Scores are 0-100. Respond with a single JSON
object:
{
  "overallScore": number,
  "issues": [{"timestampSec": number, "type": string, "description": string, "severity": "low" | "medium" | "high"}],
  "metrics": {"paceWpm": number, "fillerWordsPerMin": number, "silenceRatio": number, "avgVolumeDb": number}
}
""",

    "combine-agent": """You are the lead coach merging specialist reviews of one presentation.
A value of null means that specialist could not run.

Deck review:
{{ deckAgent }}

Delivery review:
{{ textAgent }}

Audio review:
{{ audioAgent }}

Write a unified assessment. Scores are 0-100. Respond with a single JSON object:
{
  "summary": {"overallScore": number, "headline": string, "highlights": [string], "risks": [string]},
  "timeline": [{"startSec": number, "endSec": number, "category": string, "note": string, "severity": "low" | "medium" | "high"}],
  "recommendations": [{"title": string, "priority": "low" | "medium" | "high", "rationale": string, "actionItems": [string]}]
}
""",

    "audio-analysis": """Audio metadata: {{ audioMeta }}
Describe the emotional tone, pacing, and notable background sounds of this recording.
Give timestamps where possible and summarize the key points the speaker makes.""",
}
# fmt: on
