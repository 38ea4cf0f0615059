"""
polyscribe/translation/dictionaries.py
=======================================
Offline phrase tables — PolyScribe

Fixed word / phrase substitution tables for the offline dictionary engine,
one per supported language pair, plus the cultural-adaptation notes
attached when specific phrases appear in the source text.

Keys are lowercase. Longer keys win over shorter overlapping ones.
"""

from polyscribe.languages import Language

ZH, EN, MS = Language.ZH, Language.EN, Language.MS

PHRASE_TABLES: dict[tuple[Language, Language], dict[str, str]] = {
    (ZH, EN): {
        "你好": "hello",
        "再见": "goodbye",
        "谢谢": "thank you",
        "对不起": "sorry",
        "是的": "yes",
        "不是": "no",
        "会议": "meeting",
        "议程": "agenda",
        "今天": "today",
        "明天": "tomorrow",
        "项目": "project",
        "团队": "team",
        "工作": "work",
        "任务": "task",
        "完成": "complete",
        "开始": "start",
        "结束": "end",
        "讨论": "discuss",
        "决定": "decide",
        "计划": "plan",
    },
    (EN, ZH): {
        "hello": "你好",
        "goodbye": "再见",
        "thank you": "谢谢",
        "sorry": "对不起",
        "yes": "是的",
        "no": "不是",
        "meeting": "会议",
        "agenda": "议程",
        "today": "今天",
        "tomorrow": "明天",
        "project": "项目",
        "team": "团队",
        "work": "工作",
        "task": "任务",
        "complete": "完成",
        "start": "开始",
        "end": "结束",
        "discuss": "讨论",
        "decide": "决定",
        "plan": "计划",
    },
    (MS, EN): {
        "selamat pagi": "good morning",
        "selamat petang": "good afternoon",
        "terima kasih": "thank you",
        "maaf": "sorry",
        "ya": "yes",
        "tidak": "no",
        "mesyuarat": "meeting",
        "agenda": "agenda",
        "hari ini": "today",
        "esok": "tomorrow",
        "projek": "project",
        "pasukan": "team",
        "kerja": "work",
        "tugasan": "task",
        "siap": "complete",
        "mula": "start",
        "tamat": "end",
    },
    (EN, MS): {
        "good morning": "selamat pagi",
        "good afternoon": "selamat petang",
        "thank you": "terima kasih",
        "sorry": "maaf",
        "yes": "ya",
        "no": "tidak",
        "meeting": "mesyuarat",
        "agenda": "agenda",
        "today": "hari ini",
        "tomorrow": "esok",
        "project": "projek",
        "team": "pasukan",
        "work": "kerja",
        "task": "tugasan",
        "complete": "siap",
        "start": "mula",
        "end": "tamat",
    },
    (ZH, MS): {
        "你好": "hello / hai",
        "谢谢": "terima kasih",
        "会议": "mesyuarat",
        "今天": "hari ini",
        "项目": "projek",
        "工作": "kerja",
    },
    (MS, ZH): {
        "terima kasih": "谢谢",
        "mesyuarat": "会议",
        "hari ini": "今天",
        "projek": "项目",
        "kerja": "工作",
    },
}

# (source, target) → [(trigger phrase, note)]
CULTURAL_ADAPTATIONS: dict[tuple[Language, Language], list[tuple[str, str]]] = {
    (ZH, EN): [
        ("老板", 'Western workplaces usually address a "boss" as "manager" or "supervisor".'),
        ("师傅", 'The usual Western equivalent of "师傅" is "expert" or "specialist".'),
    ],
    (EN, MS): [
        ("sir", 'Malay usage prefers the honorific "Encik" for "sir".'),
        ("madam", 'Malay usage prefers the honorific "Puan" for "madam".'),
    ],
}
