# polyscribe/__init__.py
# =======================
# PolyScribe — multilingual (zh / en / ms) meeting transcript core
#
# Engines (leaves first):
#   - polyscribe.audio        — audio signal metrics + capture sources
#   - polyscribe.nlp          — heuristic language detection + debounce
#   - polyscribe.translation  — multi-engine translation orchestrator
#   - polyscribe.transcript   — versioned transcript store + export
#
# polyscribe.session wires one instance of each engine per meeting.

__version__ = "1.0.0"
