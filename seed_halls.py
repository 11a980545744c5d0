#!/usr/bin/env python3
"""
Script to insert halls into the hall directory

Usage:
    python seed_halls.py "Main Hall" "Chapel" "Room 201"

With no arguments, names are read from the comma-separated HALL_NAMES
environment variable.
"""

import os
import sys

from hallbook import models  # noqa: F401
from hallbook.database import Base, SessionLocal, engine
from hallbook.domain.halls.service import HallService


def seed_halls(names: list[str]) -> None:
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()

    try:
        print(f"🔍 Ensuring {len(names)} hall(s) exist...\n")
        halls = HallService(db).ensure_halls(names)
        for hall in halls:
            print(f"   ✅ {hall.id}: {hall.name}")
        print(f"\n✅ Hall directory now lists {len(HallService(db).list_halls())} hall(s)")
    finally:
        db.close()


if __name__ == "__main__":
    names = sys.argv[1:] or [n for n in os.getenv("HALL_NAMES", "").split(",") if n.strip()]
    if not names:
        print("⚠️  No hall names given (pass them as arguments or set HALL_NAMES)")
        sys.exit(1)
    seed_halls(names)
