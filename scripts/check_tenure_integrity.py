#!/usr/bin/env python3
"""
Tenure Integrity Check Script.

Validates that:
  1. No (teammate, assignment) or (teammate, company) pair holds more than
     one open tenure
  2. The partial unique indexes backing the invariants exist
  3. No teammate holds more than one open check-in per dimension

Exits non-zero when any check fails.

Usage:
    python scripts/check_tenure_integrity.py
    python scripts/check_tenure_integrity.py --env production
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger("tenure_integrity_check")

# (table, index name) pairs that enforce "one open row" in the database
ONE_OPEN_INDEXES = [
    ("assignment_tenures", "uq_assignment_tenures_one_open"),
    ("employment_tenures", "uq_employment_tenures_one_open"),
    ("assignment_check_ins", "uq_assignment_check_ins_one_open"),
    ("position_check_ins", "uq_position_check_ins_one_open"),
    ("aspiration_check_ins", "uq_aspiration_check_ins_one_open"),
]

# (table, grouping columns) for open check-in duplicates
OPEN_CHECK_IN_GROUPS = [
    ("assignment_check_ins", "teammate_id, assignment_id"),
    ("position_check_ins", "teammate_id"),
    ("aspiration_check_ins", "teammate_id, aspiration_id"),
]


def main():
    parser = argparse.ArgumentParser(description="Check MAAP tenure integrity")
    parser.add_argument("--env", default=os.getenv("APP_ENV", "development"))
    args = parser.parse_args()

    from sqlalchemy import inspect as sa_inspect

    from maap import create_app
    from maap.models import db
    from maap.services.tenure_service import find_open_tenure_violations

    app = create_app(args.env)

    with app.app_context():
        logger.info("=" * 60)
        logger.info("MAAP - Tenure Integrity Check")
        logger.info("=" * 60)

        errors = 0

        # ─── Check 1: open tenure duplicates ────────────────────────
        logger.info("\n[Check 1] One open tenure per teammate/dimension")
        violations = find_open_tenure_violations()
        for v in violations:
            logger.error(
                "  ❌ %-10s teammate=%-6s dimension_id=%-6s open=%d",
                v["dimension"], v["teammate_id"], v["dimension_id"], v["open_count"],
            )
        if violations:
            errors += len(violations)
        else:
            logger.info("  ✅ no duplicate open tenures")

        # ─── Check 2: partial unique indexes present ─────────────────
        logger.info("\n[Check 2] Partial unique indexes")
        inspector = sa_inspect(db.engine)
        for table, index_name in ONE_OPEN_INDEXES:
            names = {ix["name"] for ix in inspector.get_indexes(table)}
            if index_name in names:
                logger.info("  ✅ %-25s %s", table, index_name)
            else:
                logger.error("  ❌ %-25s MISSING %s", table, index_name)
                errors += 1

        # ─── Check 3: open check-in duplicates ───────────────────────
        logger.info("\n[Check 3] One open check-in per teammate/dimension")
        for table, cols in OPEN_CHECK_IN_GROUPS:
            dupes = db.session.execute(db.text(f"""
                SELECT COUNT(*) FROM (
                    SELECT {cols} FROM {table}
                    WHERE official_check_in_completed_at IS NULL
                    GROUP BY {cols}
                    HAVING COUNT(*) > 1
                ) d
            """)).scalar()
            if dupes:
                logger.error("  ❌ %-25s %d duplicated open check-ins", table, dupes)
                errors += 1
            else:
                logger.info("  ✅ %-25s consistent", table)

        logger.info("\n" + "=" * 60)
        if errors:
            logger.error("FAILED - %d problem(s) found", errors)
            sys.exit(1)
        logger.info("PASSED - tenure invariants hold")


if __name__ == "__main__":
    main()
