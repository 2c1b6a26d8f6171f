"""Key System Monetizzy - serverless entry point (Vercel / AWS Lambda)"""
from mangum import Mangum

from .app_factory import create_app
from .config import load_settings
from .logging_config import setup_logging

settings = load_settings()
setup_logging(level=settings.log_level, log_file=settings.log_file, json_format=settings.log_json)

app = create_app(settings)

# ═══════════════════════════════════════════════════════════
# VERCEL HANDLER
# ═══════════════════════════════════════════════════════════

handler = Mangum(app, lifespan="auto")
