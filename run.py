"""Local development entry point.

Usage:
    python run.py              # http://localhost:5000, debug on
    PORT=8000 python run.py

Reads SECRET_KEY and API_BASE_URL from .env. In production run the
app factory under a WSGI server instead (`portal:create_app()`).
"""

import os

from dotenv import load_dotenv

load_dotenv()  # Load .env before the config classes read os.environ

from portal import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="127.0.0.1", port=int(os.environ.get("PORT", 5000)))
