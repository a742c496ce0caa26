#!/usr/bin/env python
"""Seed script to create the DocFlow tables and the branch directory.

Run once during initial setup against an empty database. Branches already
present (same BA code) are left untouched.

Usage:
    python backend/scripts/seed_branches.py branches.csv

The CSV has one branch per line: ba_code,branch_code,name,region_code

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
"""

import csv
import sys
from pathlib import Path

# Add backend to Python path
backend_root = Path(__file__).parent.parent
sys.path.insert(0, str(backend_root))

from docflow.database import get_engine, get_session_factory
from docflow.models import Base, Branch


def read_branches(path: Path):
    with path.open(newline="", encoding="utf-8") as handle:
        for line_number, row in enumerate(csv.reader(handle), start=1):
            if not row or row[0].startswith("#"):
                continue
            if len(row) != 4:
                raise ValueError(f"line {line_number}: expected 4 columns, got {len(row)}")
            ba_code, branch_code, name, region_code = (value.strip() for value in row)
            yield Branch(
                ba_code=int(ba_code),
                branch_code=int(branch_code),
                name=name,
                region_code=region_code or "R6",
                is_active=True,
            )


def main():
    """Create tables and insert missing branches."""
    if len(sys.argv) != 2:
        print("Usage: python seed_branches.py <branches.csv>")
        sys.exit(1)

    try:
        branches = list(read_branches(Path(sys.argv[1])))
    except (OSError, ValueError) as e:
        print(f"ERROR: Could not read branches: {e}")
        sys.exit(1)

    Base.metadata.create_all(bind=get_engine())
    session = get_session_factory()()

    try:
        existing = {ba_code for (ba_code,) in session.query(Branch.ba_code)}
        missing = [branch for branch in branches if branch.ba_code not in existing]
        session.add_all(missing)
        session.commit()

        print(f"SUCCESS: {len(missing)} branches created, {len(branches) - len(missing)} already present")
        for branch in missing:
            print(f"  {branch.ba_code}  {branch.region_code}  {branch.name}")

    except Exception as e:
        session.rollback()
        print(f"ERROR: Failed to seed branches: {e}")
        sys.exit(1)

    finally:
        session.close()


if __name__ == "__main__":
    main()
