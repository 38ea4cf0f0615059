"""
polyscribe/nlp/language_rules.py
=================================
Language Detection Rule Tables — PolyScribe

Responsibility:
    - Hold the editable lexicon / regex tables that drive heuristic
      language scoring: per-language keyword patterns, common-word lists,
      the CJK ideograph rule, the Malay affix rule, and culture-tagged
      marker keywords
    - Compile them into a LanguageRuleSet consumed by the detector

The tables are plain data so the scoring model can be replaced (for
example by a trained classifier) without touching the detection engine.

Scoring weights applied by the detector:
    +2 per regex pattern match
    +3 per token found in the common-word list
    +5 per CJK ideograph (zh)
    +2 per affix match (ms)
"""

import re
from dataclasses import dataclass, field

from polyscribe.languages import Language


# ---------------------------------------------------------------------------
# Raw tables
# ---------------------------------------------------------------------------

CJK_CHAR_CLASS: str = r"\u4e00-\u9fff"

LANGUAGE_PATTERNS: dict[Language, list[str]] = {
    Language.ZH: [
        rf"[{CJK_CHAR_CLASS}]",
        r"[，。！？；：“”‘’]",
    ],
    Language.EN: [
        r"\b(?:the|a|an|and|or|but|in|on|at|to|for|of|with|by)\b",
        r"\b(?:i|you|he|she|it|we|they|this|that|these|those)\b",
        r"\b(?:what|where|when|why|how|who)\b",
        r"\b(?:hello|hi|hey|thanks|please|okay|meeting|agenda|project|team|update)\b",
    ],
    Language.MS: [
        r"\b(?:yang|dan|atau|dengan|untuk|ini|itu|adalah|tidak|ada)\b",
        r"\b(?:saya|anda|dia|mereka|kita|kami|awak)\b",
        r"\b(?:apa|mana|bila|mengapa|bagaimana|siapa)\b",
    ],
}

COMMON_WORDS: dict[Language, list[str]] = {
    Language.ZH: [
        "的", "了", "是", "我", "你", "他", "她", "它", "我们", "你们", "他们",
        "这", "那", "有", "在", "和", "与", "但是", "然后", "因为", "所以",
        "什么", "怎么", "为什么", "哪里", "什么时候", "谁", "今天", "明天", "昨天",
    ],
    Language.EN: [
        "the", "be", "to", "of", "and", "a", "in", "that", "have", "i",
        "it", "for", "not", "on", "with", "he", "as", "you", "do", "at",
        "this", "but", "his", "by", "from", "they", "we", "say", "her", "she",
        "hello", "hi", "thanks", "please", "okay",
    ],
    Language.MS: [
        "yang", "dan", "atau", "dengan", "untuk", "ini", "itu", "adalah", "tidak", "ada",
        "saya", "anda", "dia", "mereka", "kita", "kami", "awak", "pada", "dalam", "ke",
        "apa", "mana", "bila", "mengapa", "bagaimana", "siapa", "hari", "masa", "tahun",
    ],
}

# Malay prefixes (me-, ber-, ter-, ke-, pe-, per-, di-, se-) on a longer stem
MALAY_AFFIX_PATTERN: str = r"\b(?:me|ber|ter|ke|pe|per|di|se)[a-z]+"

CULTURAL_MARKERS: dict[str, list[str]] = {
    "chinese": [
        "春节", "中秋", "端午", "清明", "国庆", "元宵",
        "老板", "师傅", "阿姨", "叔叔", "哥哥", "姐姐",
        "茶", "粥", "包子", "饺子", "面条",
    ],
    "malay": [
        "hari raya", "ramadan", "chinese new year", "deepavali",
        "mak", "pak", "kak", "abang", "adik",
        "nasi", "mee", "roti", "teh", "kopi",
    ],
    "western": [
        "christmas", "thanksgiving", "easter", "halloween",
        "sir", "madam", "mr", "mrs", "ms",
        "coffee", "tea", "breakfast", "lunch", "dinner",
    ],
}


# ---------------------------------------------------------------------------
# Compiled rule set
# ---------------------------------------------------------------------------


@dataclass
class LanguageRules:
    """Compiled rules for one language."""

    language: Language
    patterns: list[re.Pattern[str]]
    common_words: frozenset[str]


@dataclass
class LanguageRuleSet:
    """All rules the detector needs, compiled once per detector."""

    rules: dict[Language, LanguageRules]
    cjk_pattern: re.Pattern[str]
    affix_pattern: re.Pattern[str]
    cultural_markers: dict[str, list[str]] = field(default_factory=dict)
    pattern_weight: int = 2
    common_word_weight: int = 3
    cjk_weight: int = 5
    affix_weight: int = 2

    def __post_init__(self) -> None:
        missing = [lang for lang in Language if lang not in self.rules]
        if missing:
            raise ValueError(f"Rule set is missing languages: {missing}")

    @classmethod
    def default(cls) -> "LanguageRuleSet":
        return cls.from_tables(
            LANGUAGE_PATTERNS, COMMON_WORDS, MALAY_AFFIX_PATTERN, CULTURAL_MARKERS,
        )

    @classmethod
    def from_tables(
        cls,
        patterns: dict[Language, list[str]],
        common_words: dict[Language, list[str]],
        affix_pattern: str,
        cultural_markers: dict[str, list[str]],
    ) -> "LanguageRuleSet":
        rules = {
            lang: LanguageRules(
                language=lang,
                patterns=[re.compile(p, re.IGNORECASE) for p in patterns.get(lang, [])],
                common_words=frozenset(w.lower() for w in common_words.get(lang, [])),
            )
            for lang in Language
        }
        return cls(
            rules=rules,
            cjk_pattern=re.compile(rf"[{CJK_CHAR_CLASS}]"),
            affix_pattern=re.compile(affix_pattern),
            cultural_markers={
                culture: [m.lower() for m in markers]
                for culture, markers in cultural_markers.items()
            },
        )
