from __future__ import annotations

import logging
import os

from maturity_sunburst import create_app

logging.basicConfig(
    level=str(os.environ.get("SUNBURST_LOG_LEVEL", "INFO")).upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


if __name__ == "__main__":
    host = str(os.environ.get("SUNBURST_UI_HOST", "127.0.0.1"))
    port = int(os.environ.get("SUNBURST_UI_PORT", "5050"))
    debug = str(os.environ.get("SUNBURST_UI_DEBUG", "true")).strip().lower() in {"1", "true", "yes", "y"}
    app.run(host=host, port=port, debug=debug)
