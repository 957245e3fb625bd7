"""Command-line interface for duplicating a record in a Deriva catalog.

Usage:
    deriva-duplicate deriva_duplicate.hostname=deriva.example.org \\
        deriva_duplicate.schema_name=sales deriva_duplicate.plan_file=plans/opportunity.yaml rid=1-ABCD
    deriva-duplicate deriva_duplicate.hostname=deriva.example.org \\
        deriva_duplicate.schema_name=sales deriva_duplicate.plan=opportunity rid=1-ABCD

A plan is required: either a plan file or the name of a built-in plan.

The clone's RID is printed on success. On failure the run report is printed,
listing anything the failed run left in the catalog, and the exit code is 1.
"""

import argparse
import logging
import sys

from hydra_zen import builds, store, zen

from deriva_duplicate.core.config import DuplicatorConfig
from deriva_duplicate.core.exceptions import DerivaDuplicateException, PlanConfigurationError
from deriva_duplicate.core.logging_config import apply_logger_overrides, configure_logging
from deriva_duplicate.core.records import EntityReference
from deriva_duplicate.duplicate.orchestrator import Duplicator
from deriva_duplicate.service.ermrest import ErmrestDataService


def duplicate_record(
    deriva_duplicate: DuplicatorConfig,
    rid: str,
    table: str | None = None,
    report_format: str = "text",
) -> str | None:
    """Duplicate the record ``rid`` as configured and return the clone's RID.

    Args:
        deriva_duplicate: Connection and plan configuration.
        rid: RID of the record to duplicate.
        table: Table of the record. Defaults to the plan's root table.
        report_format: ``text`` or ``json`` rendering of the run report.
    """
    configure_logging(
        level=deriva_duplicate.logging_level,
        deriva_level=deriva_duplicate.deriva_logging_level,
    )
    if deriva_duplicate.logger_overrides:
        apply_logger_overrides(deriva_duplicate.logger_overrides)
    if not deriva_duplicate.schema_name:
        raise PlanConfigurationError("deriva_duplicate.schema_name must be set")

    plan = deriva_duplicate.load_plan()
    service = ErmrestDataService.connect(
        deriva_duplicate.hostname,
        deriva_duplicate.catalog_id,
        deriva_duplicate.schema_name,
        credential=deriva_duplicate.credential,
        not_found_code=deriva_duplicate.not_found_code,
    )
    duplicator = Duplicator(service, plan, not_found_code=deriva_duplicate.not_found_code)
    target = EntityReference(type=table or plan.root_entity, id=str(rid))
    try:
        clone = duplicator.duplicate(target)
    except DerivaDuplicateException as e:
        if e.report is not None:
            print(e.report.to_json() if report_format == "json" else e.report.to_text(), file=sys.stderr)
        raise

    if clone is None:
        logging.getLogger("deriva_duplicate").warning("%s is not a %s record", target, plan.root_entity)
        return None
    print(clone.id)
    return clone.id


store(
    builds(
        duplicate_record,
        populate_full_signature=True,
        hydra_defaults=["_self_", {"deriva_duplicate": "default_deriva"}],
    ),
    name="deriva_duplicate",
)


def main() -> int:
    """Main entry point for the duplication CLI.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    parser = argparse.ArgumentParser(
        description="Duplicate a record with its dependent data",
        epilog=(
            "Examples:\n"
            "  deriva-duplicate deriva_duplicate.hostname=example.org deriva_duplicate.schema_name=sales \\\n"
            "      deriva_duplicate.plan_file=plans/opportunity.yaml rid=1-ABCD\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", help="Show this help message and exit")
    args, remaining = parser.parse_known_args()

    if args.help and not remaining:
        parser.print_help()
        print("\nHydra overrides:")
        print("  rid=<RID>                          Record to duplicate (required)")
        print("  table=<name>                       Table of the record (default: plan root)")
        print("  deriva_duplicate.hostname=<host>   Deriva server")
        print("  deriva_duplicate.catalog_id=<id>   Catalog")
        print("  deriva_duplicate.schema_name=<s>   Schema holding the tables")
        print("  deriva_duplicate.plan=<name>       Built-in plan")
        print("  deriva_duplicate.plan_file=<path>  YAML/JSON plan file")
        print("  (one of plan or plan_file is required)")
        return 0

    store.add_to_hydra_store()

    original_argv = sys.argv
    sys.argv = [sys.argv[0]] + remaining
    try:
        zen(duplicate_record).hydra_main(
            config_name="deriva_duplicate",
            version_base="1.3",
            config_path=None,
        )
    except DerivaDuplicateException:
        return 1
    finally:
        sys.argv = original_argv
    return 0


if __name__ == "__main__":
    sys.exit(main())
