import argparse
import sys

from tqdm import tqdm

from logger import logger
from rules.errors import FilterRulesError
from rules.parser import parse_rules_file
from services.gmail_service import FilterWriter, GmailService


def write_filters(rules_file: str, dry_run: bool, show: bool) -> int:
    try:
        ruleset = parse_rules_file(rules_file)
    except FilterRulesError as e:
        logger.error(f"Unable to read {rules_file}: {e}")
        return 2

    if ruleset is None:
        logger.info(f"No rules found in {rules_file}")
        return 0

    if show:
        print(ruleset)
        return 0

    email_service = GmailService()
    writer = FilterWriter(email_service.client)

    enabled_rules = [rule for rule in ruleset if rule.enabled]
    logger.info(f"Writing {len(enabled_rules)} of {len(ruleset)} rules as Gmail filters...")
    with tqdm(total=len(enabled_rules), desc="Filters") as progress_bar:
        errors = writer.ensure_filters(
            ruleset, dry_run=dry_run, on_rule=lambda rule: progress_bar.update(1)
        )

    for error in errors:
        logger.error(f"Rule not converted:\n{error}")
    logger.info(
        f"Done: {len(enabled_rules) - len(errors)} filters written, {len(errors)} skipped"
    )
    return 1 if errors else 0


if __name__ == "__main__":
    arg_parser = argparse.ArgumentParser(
        description="Convert a msgFilterRules.dat file into Gmail filters"
    )

    arg_parser.add_argument(
        "--rules-file",
        type=str,
        required=True,
        help="Path to the msgFilterRules.dat file to convert",
    )
    arg_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compile the filters without creating labels or filters",
    )
    arg_parser.add_argument(
        "--show",
        action="store_true",
        help="Print the parsed rules and exit",
    )
    arg_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every compiled query",
    )

    args = arg_parser.parse_args()

    if args.verbose:
        logger.setLevel("DEBUG")

    sys.exit(write_filters(args.rules_file, args.dry_run, args.show))
