import argparse
import json
import sys

from docpreview.config.settings import Settings
from docpreview.database.connection import close_pool, init_pool
from docpreview.logging.logger import Log
from docpreview.processor.exceptions import ProcessorError
from docpreview.processor.processor import build_processor


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate previews and thumbnails for uploads.")
    parser.add_argument("file_ids", nargs="+", help="Upload identifiers to process")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Reset the uploads to pending instead of processing them",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point: initialize pool -> build processor -> process each upload."""
    args = parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    exit_code = 0
    try:
        processor = build_processor(settings)
        for file_id in args.file_ids:
            try:
                if args.reset:
                    previous = processor.reset(file_id)
                    output = {"id": file_id, "previousStatus": previous.value}
                else:
                    output = processor.process(file_id).to_dict()
            except ProcessorError as exc:
                print(json.dumps(exc.to_dict()))
                exit_code = 1
                continue
            print(json.dumps(output, default=str))
    finally:
        close_pool()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
