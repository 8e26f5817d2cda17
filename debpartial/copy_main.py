import argparse
import logging
import sys
import traceback

from .copier import ArchiveCopier
from .errors import DebPartialError
from .main import configure_logging
from .models import COPIED, IGNORED, NOT_FOUND, FAILED

logger = logging.getLogger(__name__)


def main(argv=None):
    """Copies the pool files listed by a partial archive's indices."""
    parser = argparse.ArgumentParser(
        prog="debcopy",
        description="Copy the files listed in <dest>/dists/**/Packages.gz and Sources.gz from <source> into <dest>.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("source", help="Top directory (or http(s) URL) of the full Debian archive.")
    parser.add_argument("dest", help="Top directory of the partial archive.")
    parser.add_argument("-l", "--symlink", action="store_true", help="Create relative symbolic links instead of copying.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    try:
        stats = ArchiveCopier(args.source, args.dest, symlink=args.symlink, show_progress=not args.debug).run()
    except DebPartialError as e:
        logger.error(f"Error!: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Process interrupted by user.")
        return 1
    except Exception as e:
        logger.error(f"An unexpected critical error occurred: {e}")
        logger.error(traceback.format_exc())
        return 1

    logger.info(f"Number of Copied Files: {stats[COPIED]}")
    logger.info(f"Number of Ignored Files: {stats[IGNORED]}")
    logger.info(f"Number of Non-existent Files: {stats[NOT_FOUND]}")
    if stats[FAILED]:
        logger.warning(f"Number of Failed Downloads: {stats[FAILED]}")
    return 1 if stats[NOT_FOUND] or stats[FAILED] else 0


if __name__ == "__main__":
     sys.exit(main())
