"""System instruction, response schema and context prompts for the analysis call."""

from __future__ import annotations

import json

from psychoanalyze.models import Profile

ANALYSIS_SYSTEM = """You are an expert Forensic Psychologist and Behavioral Analyst.
Your objective is to build and continuously refine an extremely detailed psychological profile of a subject based on multimodal inputs.

You will receive:
1. The SUBJECT'S CURRENT PROFILE (if it exists).
2. NEW EVIDENCE (Images, PDFs, Audio, Video, HTML, Texts).
3. USER CONTEXT describing the files.

YOUR TASK:
1. **Analyze the New Evidence:**
   - **Context:** Use the provided USER CONTEXT to identify speakers (e.g. "Blue bubbles are the subject") or understand the situation.
   - **Bio Data:** Scan documents/chats for First Name, Last Name, and Date of Birth.
   - **Images (Multiple):** Look for environmental clues (messy/organized room), fashion choices (status signaling vs. comfort), facial micro-expressions.
   - **Videos/Screen Recordings:** If the video is a screen capture of text scrolling, READ THE TEXT deeply. Analyze the conversation flow, response times, and emojis. If it is a video of the person, analyze body language (kinesics) and tone (paralinguistics).
   - **Audio:** Listen for vocal fry, upspeak, tremors, or rapid speech indicating anxiety or mania.
   - **Documents (PDF/HTML/Text):** Analyze syntax, vocabulary complexity, and sentiment.

2. **Update the Profile (Incremental Integration):**
   - Do NOT discard old information unless the new evidence strongly contradicts it.
   - Refine the Big Five scores based on the aggregate data.
   - Refine the MBTI and Enneagram types as more data becomes available.
   - **Attachment Style:** Look for signs of "push-pull" dynamics, hypersensitivity to rejection (Anxious), or excessive independence (Avoidant).

3. **Output:**
   - Provide a deep, professional psychological report in JSON format.
   - The "summary" field should read like a clinical report or a character study.
"""

ANALYSIS_INSTRUCTIONS = (
    "=== INSTRUCTIONS ===\n"
    "Analyze the following new evidence (files) and generate an UPDATED profile JSON. "
    "Integrate these findings with the current profile context. If you find bio data "
    "(Name, DOB) in the new evidence, return it in candidateProfile."
)

NEW_SUBJECT_PROMPT = (
    "=== STATUS: NEW SUBJECT ===\n"
    "No prior data. Establish a baseline profile from the provided evidence."
)

_TRAIT_SCORE = "0-100 score. "

RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "candidateProfile": {
            "type": "OBJECT",
            "properties": {
                "firstName": {"type": "STRING", "description": "First name if clearly identified in evidence."},
                "lastName": {"type": "STRING", "description": "Last name if clearly identified in evidence."},
                "dateOfBirth": {"type": "STRING", "description": "Date of birth if found (YYYY-MM-DD or text)."},
            },
        },
        "bigFive": {
            "type": "OBJECT",
            "properties": {
                "openness": {"type": "NUMBER", "description": _TRAIT_SCORE + "Openness to experience."},
                "conscientiousness": {"type": "NUMBER", "description": _TRAIT_SCORE + "Self-discipline and goal-directed behavior."},
                "extraversion": {"type": "NUMBER", "description": _TRAIT_SCORE + "Energy creation from external means."},
                "agreeableness": {"type": "NUMBER", "description": _TRAIT_SCORE + "General concern for social harmony."},
                "neuroticism": {"type": "NUMBER", "description": _TRAIT_SCORE + "Tendency to experience negative emotions."},
            },
            "required": ["openness", "conscientiousness", "extraversion", "agreeableness", "neuroticism"],
        },
        "mbti": {"type": "STRING", "description": "Myers-Briggs Type Indicator (e.g., INTJ, ENFP). Provide the most likely type."},
        "enneagram": {"type": "STRING", "description": "Enneagram Type and Wing (e.g., 4w5, 8w7)."},
        "attachmentStyle": {
            "type": "STRING",
            "description": "Detailed attachment style (e.g., Anxious-Preoccupied, Dismissive-Avoidant, Secure).",
        },
        "summary": {
            "type": "STRING",
            "description": (
                "An extremely detailed, evolving psychological profile of the person. This must merge previous "
                "knowledge with new insights. Discuss core motivations, fears, defense mechanisms, and cognitive patterns."
            ),
        },
        "keyTraits": {"type": "ARRAY", "items": {"type": "STRING"}, "description": "List of distinct personality traits observed."},
        "newObservations": {
            "type": "STRING",
            "description": "Specific insights derived ONLY from this latest batch of evidence. What did this specific upload reveal?",
        },
        "bodyLanguageAnalysis": {
            "type": "STRING",
            "description": (
                "If video/image, provide deep analysis of posture, micro-expressions, eye contact, and hand gestures. "
                "If text-only, leave empty."
            ),
        },
        "toneAnalysis": {
            "type": "STRING",
            "description": (
                "If audio/video, analyze pitch, prosody, cadence, hesitation markers, and emotional leakage in voice. "
                "If text-only, leave empty."
            ),
        },
    },
    "required": ["bigFive", "mbti", "enneagram", "attachmentStyle", "summary", "keyTraits", "newObservations"],
}


def build_context_prompt(profile: Profile | None) -> str:
    """Describe the established profile, or flag a new subject."""
    if profile is None:
        return NEW_SUBJECT_PROMPT
    return (
        "=== CURRENT ESTABLISHED PROFILE ===\n"
        f"NAME: {profile.first_name} {profile.last_name}\n"
        f"DOB: {profile.date_of_birth}\n"
        f"SUMMARY: {json.dumps(profile.summary)}\n"
        f"EXISTING BIG FIVE SCORES: {profile.big_five.model_dump_json()}\n"
        f"MBTI HYPOTHESIS: {profile.mbti}\n"
        f"ENNEAGRAM HYPOTHESIS: {profile.enneagram}\n"
        f"ATTACHMENT STYLE: {profile.attachment_style}\n"
        f"KEY TRAITS: {json.dumps(profile.key_traits)}\n"
    )


def build_user_context(description: str) -> str:
    return f"=== USER CONTEXT DESCRIPTION ===\n{description or 'No specific context provided.'}"
