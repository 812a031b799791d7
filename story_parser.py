"""Parse and validate model output into a story payload.

Malformed output is not an error: ``parse_story_response`` returns a
``Fallback`` carrying the raw text, and ``story_payload`` turns it into a
canned but structurally valid response.
"""

import json
import logging
import re
from dataclasses import dataclass

log = logging.getLogger("palace")

_CODE_FENCE_RE = re.compile(r"```json\n?|\n?```")

FALLBACK_STORY = (
    "Vous vous trouvez dans un magnifique palais aux couloirs infinis. "
    "Chaque porte raconte une histoire différente, chaque couloir mène vers "
    "de nouveaux mystères à découvrir."
)
FALLBACK_CHOICES = [
    "Explorer le couloir de gauche aux tapisseries dorées",
    "Examiner la porte ornée de symboles mystérieux",
    "Monter l'escalier en colimaçon vers l'étage supérieur",
]
FALLBACK_MEMORY_TIP = (
    "Associez chaque élément à un sens : visualisez les couleurs, "
    "imaginez les textures, entendez les sons de vos pas."
)

REQUIRED_CHOICES = 3


@dataclass
class Parsed:
    data: dict


@dataclass
class Fallback:
    raw_text: str
    reason: str = ""

    def to_payload(self) -> dict:
        return {
            "story": self.raw_text or FALLBACK_STORY,
            "choices": list(FALLBACK_CHOICES),
            "memoryTip": FALLBACK_MEMORY_TIP,
        }


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers the model sometimes wraps output in."""
    return _CODE_FENCE_RE.sub("", text or "").strip()


def _reject_constant(name: str):
    raise ValueError(f"non-standard JSON constant {name}")


def _validation_error(data) -> str:
    if not isinstance(data, dict):
        return "not a JSON object"
    story = data.get("story")
    if not story or not isinstance(story, str):
        return "missing story"
    choices = data.get("choices")
    if not isinstance(choices, list):
        return "choices is not a list"
    if len(choices) != REQUIRED_CHOICES:
        return f"expected {REQUIRED_CHOICES} choices, got {len(choices)}"
    return ""


def parse_story_response(raw: str) -> Parsed | Fallback:
    try:
        data = json.loads(strip_code_fences(raw), parse_constant=_reject_constant)
    except (ValueError, TypeError, RecursionError) as e:
        log.warning("    story_parser: invalid JSON (%s) content=%r", e, (raw or "")[:300])
        return Fallback(raw or "", reason=f"invalid JSON: {e}")

    err = _validation_error(data)
    if err:
        log.warning("    story_parser: invalid format (%s) content=%r", err, (raw or "")[:300])
        return Fallback(raw or "", reason=err)
    return Parsed(data)


def story_payload(result: Parsed | Fallback) -> dict:
    if isinstance(result, Parsed):
        return result.data
    return result.to_payload()
