"""Run the API with uvicorn: ``python -m cotacoes``."""
from __future__ import annotations

import logging
import sys

import uvicorn

from cotacoes.app import create_app
from cotacoes.core.config import get_settings
from cotacoes.core.errors import ConfigurationError
from cotacoes.core.logging import configure_logging

logger = logging.getLogger("cotacoes")


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        app = create_app(settings)
    except ConfigurationError as exc:
        logger.error("Configuracao invalida: %s", exc)
        return 1
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
