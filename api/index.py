"""
Vercel Serverless API - Component Engine

Serves the same FastAPI app, including the /api/github/browse and
/api/github/content proxy endpoints the browser uses to keep GITHUB_TOKEN
server-side.
"""
from component_engine.main import app

# For Vercel
handler = app
