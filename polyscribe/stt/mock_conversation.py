"""
polyscribe/stt/mock_conversation.py
====================================
Demo conversation — PolyScribe

A fixed trilingual (en / zh / ms) two-speaker meeting used by the
synthetic speech recognizer, the demo endpoint and the tests.
"""

from dataclasses import dataclass

from polyscribe.languages import Language


@dataclass(frozen=True)
class MockUtterance:
    text: str
    language: Language
    speaker_id: str
    offset_ms: int  # from the start of the conversation


MOCK_CONVERSATION: tuple[MockUtterance, ...] = (
    MockUtterance("Good morning everyone, let's start today's meeting.", Language.EN, "speaker1", 2000),
    MockUtterance("早上好！今天我们讨论项目进展。", Language.ZH, "speaker2", 4000),
    MockUtterance("Selamat pagi, saya akan memberikan laporan minggu ini.", Language.MS, "speaker1", 6000),
    MockUtterance("Let me share the current status of our AI project.", Language.EN, "speaker1", 8000),
    MockUtterance("我们的语音识别功能已经基本完成了。", Language.ZH, "speaker2", 10000),
    MockUtterance("Bagaimana dengan testing dan quality assurance?", Language.MS, "speaker1", 12000),
    MockUtterance("The testing phase will begin next week.", Language.EN, "speaker2", 14000),
    MockUtterance("我们需要确保多语言切换功能正常工作。", Language.ZH, "speaker2", 16000),
    MockUtterance("Ya, ini sangat penting untuk user experience.", Language.MS, "speaker1", 18000),
    MockUtterance("Any questions about the implementation?", Language.EN, "speaker1", 20000),
)
