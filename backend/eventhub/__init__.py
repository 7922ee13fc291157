# backend/eventhub/__init__.py
"""
Package init: load environment variables from a .env file if present.
This runs before eventhub.config reads os.environ for settings.
"""

from dotenv import load_dotenv

load_dotenv()
