#!/usr/bin/env python3
"""
Seed the ticket category registry

Usage:
    python scripts/seed_categories.py
    python scripts/seed_categories.py --default billing
"""
import argparse
import sys
from pathlib import Path
from typing import List

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from ticketdesk.models.schemas import Category, Priority, SLAThresholds
from ticketdesk.repositories.category_repository import CategoryRepository


DEFAULT_CATEGORIES: List[Category] = [
    Category(
        name="technical",
        description="Technical problems and bugs",
        is_default=True,
        default_priority=Priority.HIGH,
        sla=SLAThresholds(response_hours=4, resolution_hours=24),
        default_tags=["bug", "technical"],
    ),
    Category(
        name="billing",
        description="Billing and payment questions",
        sla=SLAThresholds(response_hours=8, resolution_hours=48),
        default_tags=["billing", "payment"],
    ),
    Category(
        name="training",
        description="Training and certification requests",
        sla=SLAThresholds(response_hours=12, resolution_hours=72),
        default_tags=["training", "education"],
    ),
    Category(
        name="service",
        description="Customer service and general support",
        sla=SLAThresholds(response_hours=6, resolution_hours=24),
        default_tags=["support", "general"],
    ),
    Category(
        name="bug_report",
        description="Bug reports",
        default_priority=Priority.HIGH,
        sla=SLAThresholds(response_hours=2, resolution_hours=12),
        default_tags=["bug", "report"],
    ),
    Category(
        name="feature_request",
        description="Feature requests",
        default_priority=Priority.LOW,
        sla=SLAThresholds(response_hours=24, resolution_hours=168),
        default_tags=["feature", "enhancement"],
    ),
    Category(
        name="general",
        description="General requests",
        default_priority=Priority.LOW,
        sla=SLAThresholds(response_hours=12, resolution_hours=48),
        default_tags=["general", "other"],
    ),
]


def main():
    parser = argparse.ArgumentParser(description="Seed ticket categories")
    parser.add_argument("--default", type=str, default=None, help="Category to mark as default")
    args = parser.parse_args()

    repo = CategoryRepository()

    print("🌱 Seeding ticket categories...")
    try:
        for category in DEFAULT_CATEGORIES:
            saved = repo.upsert(category)
            print(f"  - {saved.name}: {saved.description} "
                  f"(SLA {saved.sla.response_hours}h/{saved.sla.resolution_hours}h)")

        if args.default:
            repo.set_default(args.default)

        default = repo.get_default()
        print(f"✅ {len(DEFAULT_CATEGORIES)} categories seeded, default: {default.name if default else '-'}")

    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
