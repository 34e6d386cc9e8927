import argparse

from contractdiff.config.settings import Settings
from contractdiff.database.connection import Database
from contractdiff.database.store import StoreFactory
from contractdiff.logging.logger import Log
from contractdiff.processor.processor import build_processor
from contractdiff.storage.factory import BlobStoreFactory
from contractdiff.worker.worker import Worker


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="contractdiff-worker")
    parser.add_argument(
        "--once",
        action="store_true",
        help="process runnable tasks until the queue is idle, then exit",
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="create the database tables before starting",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Entry point: open the store -> build dependencies -> start worker loop."""
    args = _parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    db = Database.from_settings(settings) if settings.store_backend.lower() == "postgres" else None
    try:
        if db is not None and args.init_schema:
            db.apply_schema()
        store = StoreFactory.create(settings, db)
        blob_store = BlobStoreFactory.create(settings)
        worker = Worker(build_processor(settings, store, blob_store), settings)
        if args.once:
            processed = worker.run_until_idle()
            Log.info(f"Processed {processed} task(s)")
        else:
            worker.run()
    finally:
        if db is not None:
            db.close()


if __name__ == "__main__":
    main()
