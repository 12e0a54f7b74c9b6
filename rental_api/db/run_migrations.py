"""
Alembic runner that needs no alembic.ini.

The script location is the ``migrations`` directory beside this module and the
database URL comes from rental_api.db.config.

    python -m rental_api.db.run_migrations upgrade head
    python -m rental_api.db.run_migrations downgrade -1
    python -m rental_api.db.run_migrations current
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from alembic import command
from alembic.config import Config

from rental_api.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# command name -> (alembic function, default positional args)
COMMANDS: Dict[str, tuple[Callable[..., object], List[str]]] = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "current": (command.current, []),
    "history": (command.history, []),
    "heads": (command.heads, []),
    "revision": (command.revision, []),
}


def build_config() -> Config:
    """Alembic Config pointing at the rental catalog migrations."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats % specially; env.py swaps in the async URL online
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url.replace("%", "%%"))
    return cfg


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> None:
    """Dispatch ``<command> [args...]`` to Alembic."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        sys.exit(f"usage: run_migrations {{{'|'.join(COMMANDS)}}} [args...]")

    name, rest = args[0], args[1:]
    if name not in COMMANDS:
        sys.exit(f"Unsupported Alembic command: {name}")

    func, defaults = COMMANDS[name]
    logger.info("alembic %s %s", name, " ".join(rest or defaults))
    func(build_config(), *(rest or defaults))


if __name__ == "__main__":
    main()
