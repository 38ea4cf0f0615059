# polyscribe/api/__init__.py
# HTTP service — FastAPI app over per-meeting sessions
