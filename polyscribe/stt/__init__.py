# polyscribe/stt/__init__.py
# Speech recognition boundary — recognizer interface and demo replay

from polyscribe.stt.mock_conversation import MOCK_CONVERSATION, MockUtterance  # noqa: F401
from polyscribe.stt.recognition import (  # noqa: F401
    MockSpeechRecognizer,
    RecognitionResult,
    SpeechRecognizer,
)
