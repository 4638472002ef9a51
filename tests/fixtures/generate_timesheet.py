#!/usr/bin/env python3
"""
Generate a sample month/day timesheet workbook for manual testing.

One sheet per team member, a "Feature" column and one column per workday
headed "M/D". Most days add up to a full 8 hours per person; a few are left
short or empty so low-hour warnings show up in the output.

Usage:
    uv run python tests/fixtures/generate_timesheet.py --month 2025-11
"""

import argparse
import random
from datetime import date, timedelta
from pathlib import Path

from faker import Faker
from openpyxl import Workbook
from openpyxl.styles import Font

fake = Faker()

OUTPUT_FILE = Path(__file__).parent / "sample_timesheet.xlsx"

FEATURES = [
    "Design",
    "Backend API",
    "Frontend",
    "QA",
    "Project Management",
    "Client Meetings",
    "Documentation",
]

DAY_HOURS = 8
SHORT_DAY_CHANCE = 0.1
DAY_OFF_CHANCE = 0.05


def get_workdays(year: int, month: int) -> list[date]:
    """All Monday-Friday dates in the month."""
    day = date(year, month, 1)
    workdays = []
    while day.month == month:
        if day.weekday() < 5:
            workdays.append(day)
        day += timedelta(days=1)
    return workdays


def split_hours(total: int, features: list[str]) -> dict[str, int]:
    """Spread whole hours over a random subset of features."""
    picked = random.sample(features, k=random.randint(1, min(3, len(features))))
    hours = {feature: 0 for feature in picked}
    for _ in range(total):
        hours[random.choice(picked)] += 1
    return hours


def build_sheet(ws, workdays: list[date]) -> None:
    """Fill one member's sheet: header row, then one row per feature."""
    headers = ["Feature", "Notes"] + [f"{d.month}/{d.day}" for d in workdays]
    for col_idx, header in enumerate(headers, start=1):
        ws.cell(row=1, column=col_idx, value=header).font = Font(bold=True)

    hours_by_feature = {feature: {} for feature in FEATURES}
    for day in workdays:
        roll = random.random()
        if roll < DAY_OFF_CHANCE:
            continue
        total = random.randint(2, DAY_HOURS - 1) if roll < SHORT_DAY_CHANCE else DAY_HOURS
        for feature, hours in split_hours(total, FEATURES).items():
            if hours:
                hours_by_feature[feature][day] = hours

    for row_idx, feature in enumerate(FEATURES, start=2):
        ws.cell(row=row_idx, column=1, value=feature)
        ws.cell(row=row_idx, column=2, value=fake.sentence(nb_words=4))
        for col_idx, day in enumerate(workdays, start=3):
            hours = hours_by_feature[feature].get(day)
            if hours:
                ws.cell(row=row_idx, column=col_idx, value=hours)


def generate_timesheet(year: int, month: int, members: int, output_path: Path) -> Path:
    workdays = get_workdays(year, month)

    wb = Workbook()
    wb.remove(wb.active)
    for _ in range(members):
        ws = wb.create_sheet(title=fake.first_name()[:31])
        build_sheet(ws, workdays)

    wb.save(output_path)
    print(f"Generated {members} sheet(s) x {len(workdays)} workdays: {output_path}")
    return output_path


def main():
    parser = argparse.ArgumentParser(description="Generate a sample timesheet workbook")
    parser.add_argument("--month", default=date.today().strftime("%Y-%m"), help="YYYY-MM")
    parser.add_argument("--members", type=int, default=2, help="Number of sheets")
    parser.add_argument("--output", type=Path, default=OUTPUT_FILE)
    parser.add_argument("--seed", type=int, help="Random seed for repeatable output")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)
        Faker.seed(args.seed)

    year, month = map(int, args.month.split("-"))
    generate_timesheet(year, month, args.members, args.output)


if __name__ == "__main__":
    main()
