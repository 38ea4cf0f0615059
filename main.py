"""
main.py
========
Central entry point for the PolyScribe service.

Run with:
    uvicorn main:app --reload

or replay the built-in demo conversation through a session and print the
transcript:
    python main.py --demo [--format txt|md|json|srt|vtt] [--translate ms]
"""

import argparse
import asyncio
import logging

from dotenv import load_dotenv

load_dotenv()  # Load .env before any module reads env vars

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Keep OpenAI SDK / HTTP transport chatter out of the service log
for _transport_logger_name in (
    "openai",
    "openai._base_client",
    "httpx",
    "httpcore",
    "aiohttp.access",
):
    logging.getLogger(_transport_logger_name).setLevel(logging.CRITICAL)

from polyscribe.api.service import app  # noqa: F401, E402
from polyscribe.config import ExportOptions, SessionOptions  # noqa: E402
from polyscribe.languages import parse_language  # noqa: E402
from polyscribe.session import MeetingSession  # noqa: E402
from polyscribe.stt.recognition import MockSpeechRecognizer  # noqa: E402

logger = logging.getLogger("polyscribe.main")


def run_demo(export_format: str, translate_to: str | None) -> str:
    """Replay the demo conversation and return the rendered transcript."""
    session = MeetingSession("demo", SessionOptions.from_env())
    recognizer = MockSpeechRecognizer()

    def _on_result(result):
        session.sample_audio()
        session.ingest(result)

    recognizer.on_result(_on_result)

    try:
        recognizer.replay()

        options = ExportOptions(include_language_info=True)
        if translate_to:
            target = parse_language(translate_to)
            asyncio.run(session.translate_all(target))
            options.include_translations = True
            options.target_language = target

        logger.info("Demo transcript: %s", session.store.statistics().to_dict())
        return session.store.export(export_format, options)
    finally:
        session.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="PolyScribe service")
    parser.add_argument("--demo", action="store_true", help="replay the demo conversation")
    parser.add_argument("--format", default="txt", help="demo export format")
    parser.add_argument("--translate", default=None, help="demo translation target (zh/en/ms)")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    if args.demo:
        print(run_demo(args.format, args.translate))
    else:
        import uvicorn
        uvicorn.run("main:app", host=args.host, port=args.port, reload=True)
