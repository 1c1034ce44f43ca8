"""Script de maintenance des embeddings (backfill, régénération, remise à zéro).

Usage:
    python -m hrkb.scripts.backfill_embeddings                 # Q&A et manuels sans embedding
    python -m hrkb.scripts.backfill_embeddings --kind manual --all
    python -m hrkb.scripts.backfill_embeddings --clear --all   # migration de modèle/dimension

Ctrl-C arrête le traitement entre deux entrées; les entrées déjà traitées restent validées et un
nouveau passage reprend là où il s'est arrêté.

Codes de sortie: 0 succès, 1 échecs partiels, 2 configuration absente, 130 annulé.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading

import structlog

from hrkb.core.constants import ENTITY_MANUAL, ENTITY_QNA
from hrkb.core.container import container
from hrkb.core.logging import setup_logging
from hrkb.domain.embedding_maintenance import EmbeddingMaintainer
from hrkb.domain.errors import ConfigurationError

log = structlog.get_logger(__name__)

EXIT_FAILURES = 1
EXIT_CONFIGURATION = 2
EXIT_CANCELLED = 130


def _kinds(kind: str) -> list[str]:
    return [ENTITY_QNA, ENTITY_MANUAL] if kind == "all" else [kind]


def run(
    maintainer: EmbeddingMaintainer,
    kinds: list[str],
    regenerate: bool,
    clear: bool,
    stop_event: threading.Event,
) -> int:
    """Enchaîne clear (optionnel) puis backfill pour chaque type; retourne le code de sortie."""
    mode = "all" if regenerate else "missing"
    exit_code = 0
    for kind in kinds:
        if clear:
            maintainer.clear(kind)
        report = maintainer.backfill(kind, mode=mode, stop_event=stop_event)
        print(
            f"{kind}: scanned={report.scanned} updated={report.updated} "
            f"failed={report.failed} skipped={report.skipped}"
        )
        if report.failed_ids:
            print(f"{kind}: failed ids: {', '.join(report.failed_ids)}")
            exit_code = EXIT_FAILURES
        if report.cancelled:
            return EXIT_CANCELLED
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Point d'entrée CLI."""
    parser = argparse.ArgumentParser(description="Backfill knowledge-base embeddings")
    parser.add_argument("--kind", choices=[ENTITY_QNA, ENTITY_MANUAL, "all"], default="all")
    parser.add_argument(
        "--all", dest="regenerate", action="store_true", help="regenerate every entry"
    )
    parser.add_argument(
        "--clear", action="store_true", help="set embeddings to NULL before backfilling"
    )
    args = parser.parse_args(argv)

    setup_logging(container.settings.APP_DEBUG)
    stop_event = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop_event.set())
    try:
        return run(container.maintainer, _kinds(args.kind), args.regenerate, args.clear, stop_event)
    except ConfigurationError as exc:
        log.error("embedding_backfill_unconfigured", error=exc.message)
        return EXIT_CONFIGURATION


if __name__ == "__main__":
    sys.exit(main())
