"""
Rule-based correction of recognized text.

Rules are data: an ordered sequence of (pattern, replacement) pairs applied
left to right. Rules overlap in effect, so their order is part of the
behaviour and must not be changed casually.
"""

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from .errors import PostprocessingFailed
from .ocr_config import RecognitionSettings

__all__ = [
    "CorrectionRule",
    "SCRIPT_RANGES",
    "TextPostprocessor",
    "build_correction_rules",
]

logger = logging.getLogger("ocr-reader.postprocess")

# Characters kept by the final cleanup rule besides ASCII word characters and
# whitespace, per language code.
SCRIPT_RANGES: dict[str, tuple[str, ...]] = {
    "jpn": (
        r"\u3040-\u309F",  # hiragana
        r"\u30A0-\u30FF",  # katakana
        r"\u4E00-\u9FAF",  # CJK unified ideographs
        r"\u3400-\u4DBF",  # CJK extension A
        r"\u301C",  # wave dash
    ),
    "chi_sim": (r"\u4E00-\u9FFF", r"\u3400-\u4DBF"),
    "chi_tra": (r"\u4E00-\u9FFF", r"\u3400-\u4DBF"),
    "kor": (
        r"\uAC00-\uD7AF",  # hangul syllables
        r"\u1100-\u11FF",  # hangul jamo
        r"\u3130-\u318F",  # compatibility jamo
    ),
}

_WHITESPACE_RUN = re.compile(r"\s+")
MAX_PASSES = 16


@dataclass(frozen=True)
class CorrectionRule:
    """One ordered substitution step."""

    name: str
    pattern: re.Pattern
    replacement: str

    @classmethod
    def compile(cls, name: str, pattern: str, replacement: str) -> "CorrectionRule":
        return cls(name=name, pattern=re.compile(pattern), replacement=replacement)

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


def _allowed_ranges(languages: Iterable[str]) -> str:
    ranges: list[str] = []
    for code in languages:
        for char_range in SCRIPT_RANGES.get(code, ()):
            if char_range not in ranges:
                ranges.append(char_range)
    return "".join(ranges)


def build_correction_rules(language: str = "jpn+eng") -> tuple[CorrectionRule, ...]:
    """
    The default rule pipeline for a (possibly composite) language code.
    """
    allowed = _allowed_ranges(language.split("+"))
    return (
        # digit/letter confusions
        CorrectionRule.compile("one", r"[Il|]", "1"),
        CorrectionRule.compile("zero", r"[Oo]", "0"),
        CorrectionRule.compile("five", r"[Ss]", "5"),
        # punctuation variants
        CorrectionRule.compile("prolonged-sound-mark", r"\uFF70", "\u30FC"),
        CorrectionRule.compile("wave-dash", r"\uFF5E", "\u301C"),
        # ligature misreads
        CorrectionRule.compile("rn", r"rn", "m"),
        CorrectionRule.compile("vv", r"vv", "w"),
        CorrectionRule.compile("pipe", r"\|", "l"),
        # anything outside ASCII word characters, whitespace and the script ranges
        CorrectionRule.compile("strip", rf"[^0-9A-Za-z_\s{allowed}]", ""),
    )


class TextPostprocessor:
    """
    Applies the correction rules, then collapses whitespace runs to a single
    space and trims. The whole pass repeats until the text stops changing,
    so processing an already-processed text returns it unchanged.
    """

    def __init__(self, rules: Optional[Sequence[CorrectionRule]] = None):
        self._rules = tuple(rules) if rules is not None else None
        self._default_rules: dict[str, tuple[CorrectionRule, ...]] = {}

    def rules_for(self, language: str) -> tuple[CorrectionRule, ...]:
        if self._rules is not None:
            return self._rules
        if language not in self._default_rules:
            self._default_rules[language] = build_correction_rules(language)
        return self._default_rules[language]

    def process(self, text: str, settings: RecognitionSettings) -> str:
        if not settings.enable_postprocessing or not text:
            return text

        rules = self.rules_for(settings.language)
        try:
            current = text
            for _ in range(MAX_PASSES):
                corrected = self._single_pass(current, rules)
                if corrected == current:
                    return corrected
                current = corrected
        except Exception as e:
            logger.error("Correction rules failed: %s", e)
            raise PostprocessingFailed(f"Correction rules failed: {e}") from e

        raise PostprocessingFailed(
            f"Corrections did not converge after {MAX_PASSES} passes",
            details={"rules": [rule.name for rule in rules]},
        )

    @staticmethod
    def _single_pass(text: str, rules: Sequence[CorrectionRule]) -> str:
        for rule in rules:
            text = rule.apply(text)
        return _WHITESPACE_RUN.sub(" ", text).strip()
