"""
Main entry point for the Greek Anki Audio augmenter.

Adds synthesized Greek pronunciation audio to an exported Anki deck.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from .anki import always_allow, always_deny
from .config import AugmentationSettings, Config
from .errors import ErrorHandler, ProcessingError
from .pipeline import AugmentationPipeline, default_output_path
from .progress import ProgressTracker


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> Optional[logging.FileHandler]:
    """
    Set up logging configuration.

    Returns:
        The per-run file handler, if one was requested; the caller closes it
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    if log_file is None:
        return None

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


def interactive_confirm(warning: ProcessingError,
                        input_func: Callable[[str], str] = input) -> bool:
    """
    Ask the user whether to continue although backed-up notes are missing.

    Args:
        warning: Completeness warning listing the missing notes
        input_func: Source of user answers

    Returns:
        True if user confirms, False otherwise or when input is closed
    """
    print("\n⚠️  NOTES MISSING SINCE LAST BACKUP")
    print("=" * 50)
    print(warning.message)
    for line in warning.details.splitlines():
        print(f"   • {line}")
    print("=" * 50)

    while True:
        try:
            response = input_func("Continue and package the deck without them? [Y/n]: ").strip().lower()
        except EOFError:
            print("\nNo answer available; not packaging the deck.")
            return False
        if response in ['', 'y', 'yes']:
            return True
        elif response in ['n', 'no']:
            return False
        else:
            print("Please enter 'y' for yes or 'n' for no.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Add Greek pronunciation audio to an exported Anki deck",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s greek.apkg
  %(prog)s greek.apkg -o greek_with_audio.apkg
  %(prog)s greek.apkg --field-pair Greek "Greek Audio" --field-pair Example "Example Audio"
  %(prog)s greek.apkg --yes --log-file logs/run.log

Output:
  The augmented deck is written next to the input as '<name>-audio.apkg'
  unless -o is given. A copy is kept in the backup directory.

Credentials:
  Set GOOGLE_APPLICATION_CREDENTIALS to a service account key with access
  to the Cloud Text-to-Speech API.
        """
    )

    parser.add_argument(
        "archive",
        type=Path,
        help="Path to the exported .apkg deck"
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output path for the augmented deck"
    )

    parser.add_argument(
        "--backup-dir",
        type=Path,
        default=None,
        help=f"Directory of timestamped backups (default: {Config.BACKUP_DIR}, env {Config.BACKUP_DIR_ENV})"
    )

    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help=f"Directory of cached audio (default: {Config.CACHE_DIR}, env {Config.CACHE_DIR_ENV})"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON settings file layered over the defaults"
    )

    parser.add_argument(
        "--field-pair",
        nargs=2,
        action="append",
        metavar=("SOURCE", "PRONUNCIATION"),
        default=None,
        help="Source field and the field receiving its audio (repeatable)"
    )

    parser.add_argument(
        "--translation-field",
        default=None,
        help=f"Field used to label notes in logs (default: {Config.TRANSLATION_FIELD})"
    )

    parser.add_argument(
        "--backup-keep",
        type=int,
        default=None,
        help="Keep only this many backups of the deck"
    )

    confirm_group = parser.add_mutually_exclusive_group()
    confirm_group.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Continue without asking when backed-up notes are missing"
    )
    confirm_group.add_argument(
        "--non-interactive",
        action="store_true",
        help="Abort without asking when backed-up notes are missing"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write the run log to this file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging and progress output"
    )

    return parser


def load_settings(args: argparse.Namespace) -> AugmentationSettings:
    overrides = dict(
        cache_dir=args.cache_dir,
        backup_dir=args.backup_dir,
        field_pairs=args.field_pair,
        translation_field=args.translation_field,
        backup_keep=args.backup_keep,
    )
    if args.config:
        return AugmentationSettings.from_json_file(args.config, **overrides)
    return AugmentationSettings.from_defaults(**overrides)


def print_issues(error_handler: ErrorHandler) -> None:
    if not (error_handler.has_errors() or error_handler.has_warnings()):
        return

    print("\n" + "=" * 50)
    print("⚠️  ISSUES DETECTED")
    print("=" * 50)

    error_summary = error_handler.get_error_summary()

    if error_summary['warning_count'] > 0:
        print(f"⚠️  Warnings: {error_summary['warning_count']}")
        for warning in error_summary['warnings']:
            print(f"   • {warning['message']}")
            if warning['suggested_actions']:
                print(f"     Suggestion: {warning['suggested_actions'][0]}")

    if error_summary['error_count'] > 0:
        print(f"❌ Errors: {error_summary['error_count']}")
        for error in error_summary['errors']:
            print(f"   • {error['message']}")
            if error['suggested_actions']:
                print(f"     Suggestion: {error['suggested_actions'][0]}")

    print("=" * 50)


def main(argv=None) -> int:
    """Command line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except (OSError, ValueError) as e:
        print(f"❌ Invalid settings: {e}")
        return 1

    file_handler = setup_logging(args.verbose, args.log_file)
    logger = logging.getLogger(__name__)

    try:
        if args.yes:
            confirm = always_allow
        elif args.non_interactive:
            confirm = always_deny
        else:
            confirm = interactive_confirm

        Config.ensure_directories(settings.cache_dir, settings.backup_dir)
        output = args.output or default_output_path(args.archive)

        logger.info("🇬🇷 Greek Anki Audio")
        logger.info(f"📦 Input deck: {args.archive}")
        logger.info(f"📦 Output deck: {output}")
        logger.info(f"🔊 Voice: {settings.voice_name} ({settings.language_code})")

        error_handler = ErrorHandler()
        pipeline = AugmentationPipeline(
            settings,
            confirm=confirm,
            progress=ProgressTracker(enable_console_output=True),
            error_handler=error_handler,
        )
        result = pipeline.run(args.archive, output)

        print_issues(error_handler)

        if result.success:
            print("\n" + "=" * 50)
            print("🎉 SUCCESS!")
            print("=" * 50)
            print(f"📦 Deck saved: {result.output_path}")
            print(f"💾 Backup: {result.backup_path}")
            print("\n📚 Next steps:")
            print("1. Open Anki on your computer")
            print("2. Go to File → Import")
            print(f"3. Select the file: {result.output_path}")
            print("=" * 50)
            return 0

        logger.error("❌ Pipeline failed. Check the error details above.")
        print("\n❌ PROCESSING FAILED")
        if result.error is not None:
            print(f"   {result.error.message}")
            if result.error.details:
                print(f"   {result.error.details}")
        print("   Use --verbose for detailed error information")
        return 1
    finally:
        if file_handler is not None:
            logging.getLogger().removeHandler(file_handler)
            file_handler.close()


if __name__ == "__main__":
    sys.exit(main())
