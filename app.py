from __future__ import annotations

import os

from src.presence_system.presence_system.main import create_app

app = create_app()


if __name__ == "__main__":
    # The reloader would fork a second process with its own sweeper thread.
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), use_reloader=False)
