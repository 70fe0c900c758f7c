"""
Prompt selection.

Maps a mode and the user's raw text to the prompt sent upstream. Chat input
may start with a command token (e.g. "/sh") that picks a dedicated template.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class Mode(Enum):
    """What the caller wants done with its text."""
    REFINE = "refine"
    CHAT = "chat"


@dataclass(frozen=True)
class PromptTemplate:
    """Instruction with a single {text} insertion point."""
    command: Optional[str]
    description: str
    body: str

    def __post_init__(self):
        """Validate the template has exactly one insertion point."""
        if self.body.count("{text}") != 1:
            raise ValueError(f"template {self.command or 'default'} must contain exactly one {{text}}")

    def render(self, text: str) -> str:
        # str.replace keeps braces in user text intact
        return self.body.replace("{text}", text)


def _fixed_tone(command: str, tone: str) -> PromptTemplate:
    return PromptTemplate(
        command=command,
        description=f"Change tone to {tone}",
        body=f"Rewrite the following text in a {tone} tone. Provide only the rewritten version:\n{{text}}",
    )


REFINE_TEMPLATE = PromptTemplate(
    command=None,
    description="Correct grammar, spelling and clarity",
    body=(
        "Correct grammar, spelling, and clarity of the input. First detect how it is "
        "written: Romanized mixed language (e.g. Hinglish), native script (e.g. Hindi "
        "in Devanagari), or plain English or another language. Keep the detected "
        "script, language mix and tone exactly as they are. Output ONLY the final "
        "corrected text, with no preamble, quotes or explanation.\n"
        "Input: \"{text}\""
    ),
)

DEFAULT_CHAT_TEMPLATE = PromptTemplate(
    command=None,
    description="Concise direct answer",
    body=(
        "Reply to the message below. Be concise and direct, do not repeat the "
        "question, and do not open with affirmations or filler. Output only the reply.\n"
        "Message: {text}"
    ),
)

# Order is the lookup order; tokens are matched case-insensitively.
COMMAND_TEMPLATES: Tuple[PromptTemplate, ...] = (
    PromptTemplate(
        command="/rp",
        description="Reply as a close friend",
        body=(
            "You are the user's close friend. Reply in their vibe: match their length, "
            "tone, slang, energy, form of address (tu/tum/aap) and language mix "
            "(Hinglish, Romanized or native script). Never switch politeness or "
            "language balance unless they do, and never say you are an AI or an "
            "assistant. Output only the reply.\n"
            "Message: {text}"
        ),
    ),
    PromptTemplate(
        command="/rs",
        description="Skeptical critique",
        body=(
            "Challenge the following statement like a skeptic would. Point out "
            "flaws, contradictions and weak spots. Provide only the reasoning:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/ct",
        description="Change tone",
        body=(
            "Rewrite the following text in the tone the user asks for (formal, casual, "
            "friendly, and so on). Provide only the rewritten version:\n{text}"
        ),
    ),
    _fixed_tone("/ctf", "formal"),
    _fixed_tone("/cts", "casual"),
    _fixed_tone("/ctp", "polite"),
    _fixed_tone("/cte", "enthusiastic"),
    PromptTemplate(
        command="/el",
        description="Expand",
        body=(
            "Expand the following text with more detail and context. "
            "Provide only the expanded version:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/sh",
        description="Shorten",
        body=(
            "Shorten the following text while retaining its core meaning. "
            "Provide only the shortened version:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/tr",
        description="Translate",
        body=(
            "Translate the following text into the language the user names "
            "(English if none is named). Provide only the translation:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/img",
        description="Image prompt",
        body=(
            "Write a detailed, descriptive image-generation prompt based on this text. "
            "Provide only the prompt:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/vid",
        description="Video prompt",
        body=(
            "Write a detailed, descriptive video-generation prompt based on this text. "
            "Provide only the prompt:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/mem",
        description="Meme caption",
        body=(
            "Come up with a meme caption or idea based on this text. "
            "Provide only the meme concept:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/li",
        description="Make a list",
        body=(
            "Convert the following text into a bulleted or numbered list. "
            "Provide only the list:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/em",
        description="Make an email",
        body=(
            "Reformat the following text into a professional email. "
            "Provide only the email:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/es",
        description="Extract key statements",
        body=(
            "Extract the key statements or quotes from the following text. "
            "Provide only the extracted statements:\n{text}"
        ),
    ),
    PromptTemplate(
        command="/cr",
        description="Customer response",
        body=(
            "Write a professional response to this customer complaint or inquiry. "
            "Provide only the response:\n{text}"
        ),
    ),
)

_COMMANDS_BY_TOKEN: Dict[str, PromptTemplate] = {t.command: t for t in COMMAND_TEMPLATES}

# A token is "/" plus word characters; it only counts when followed by
# whitespace, punctuation or end of input, never by more word characters.
_COMMAND_PATTERN = re.compile(r"^\s*(/\w+)(?!\w)(.*)$", re.DOTALL)


def match_command(raw_text: str) -> Optional[Tuple[PromptTemplate, str]]:
    """Find the command template the text starts with.

    Args:
        raw_text: User text as received

    Returns:
        (template, payload) when the leading token is a known command, where
        payload is the text after the token, or the whole input when nothing
        follows it. None otherwise.
    """
    match = _COMMAND_PATTERN.match(raw_text or "")
    if not match:
        return None

    template = _COMMANDS_BY_TOKEN.get(match.group(1).lower())
    if template is None:
        return None

    payload = match.group(2).strip().lstrip(",:;-").strip()
    return template, payload or raw_text.strip()


def select_prompt(mode: Mode, raw_text: str) -> str:
    """Build the prompt sent upstream for a request.

    Args:
        mode: REFINE or CHAT
        raw_text: Trimmed, non-empty user text

    Returns:
        The prompt body with the user text inserted
    """
    if mode == Mode.REFINE:
        return REFINE_TEMPLATE.render(raw_text)

    matched = match_command(raw_text)
    if matched is not None:
        template, payload = matched
        return template.render(payload)
    return DEFAULT_CHAT_TEMPLATE.render(raw_text)
