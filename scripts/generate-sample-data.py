#!/usr/bin/env python3
"""
Shopfloor Tracker — Sample Board Generator
Generates a consistent demo board: organisations, users, projects,
sprints and issues whose order values and tracks obey the board rules.
Used for UAT, development, and demo environments.

Usage:
    python scripts/generate-sample-data.py
    python scripts/generate-sample-data.py --projects 3 --issues 60 --output sample-board.json

Requires the project to be installed (pip install -e .).
"""

import json
import random
import uuid
import argparse
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from models import IssuePriority, SprintStatus
from ordering import Card, renumber
from workflow import STATUS_SEQUENCE, append_transition


# ── Configuration ───────────────────────────────────────────

PRODUCT_LINES = [
    ("Motor Line", "MTR"), ("Pump Assembly", "PMP"), ("Fan Housing", "FAN"),
    ("Gearbox", "GBX"), ("Alternator", "ALT"),
]
PARTS = ["stator", "rotor", "housing", "shaft", "bearing cap", "terminal box", "impeller", "end shield"]
ACTIONS = ["Source", "Inspect", "Rework", "Finish", "Prepare", "Batch"]

FIRST_NAMES = ["Alex", "Jordan", "Taylor", "Morgan", "Casey", "Riley", "Quinn", "Avery", "Sage", "River"]
LAST_NAMES = ["Chen", "Patel", "Kim", "Santos", "Müller", "Okafor", "Tanaka", "Silva", "Nguyen", "Rossi"]

REWORK_CHANCE = 0.2


class SampleDataGenerator:
    """Generates a self-consistent sample board."""

    def __init__(self, seed: int = 42):
        self.seed = seed
        self.rng = random.Random(seed)
        self.now = datetime.now(timezone.utc)

    def _uuid(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128)))

    # ── Generators ──────────────────────────────────────────

    def generate_user(self, index: int) -> dict:
        first = self.rng.choice(FIRST_NAMES)
        last = self.rng.choice(LAST_NAMES)
        return {
            "id": self._uuid(),
            "external_id": f"user_{index:04d}",
            "email": f"{first.lower()}.{last.lower()}{index}@shopfloor.dev",
            "name": f"{first} {last}",
        }

    def generate_project(self, index: int, organization_id: str) -> dict:
        name, key = PRODUCT_LINES[index % len(PRODUCT_LINES)]
        if index >= len(PRODUCT_LINES):
            key = f"{key}{index // len(PRODUCT_LINES)}"
        return {
            "id": self._uuid(),
            "name": name,
            "key": key,
            "description": f"{name} production",
            "organization_id": organization_id,
        }

    def generate_sprints(self, project: dict) -> list:
        """One finished, one running and one upcoming sprint"""
        plan = [
            (SprintStatus.COMPLETED, -28),
            (SprintStatus.ACTIVE, -7),
            (SprintStatus.PLANNED, 7),
        ]
        sprints = []
        for n, (status, offset) in enumerate(plan, start=1):
            start = self.now + timedelta(days=offset)
            sprints.append({
                "id": self._uuid(),
                "name": f"{project['key']}-{n}",
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=14)).isoformat(),
                "status": status.value,
                "project_id": project["id"],
            })
        return sprints

    def generate_track(self, final_rank: int) -> list:
        """Forward path to the final column, sometimes with one rework loop"""
        track = []
        for status in STATUS_SEQUENCE[1:final_rank + 1]:
            track = append_transition(track, status)
        if final_rank > 1 and self.rng.random() < REWORK_CHANCE:
            back = STATUS_SEQUENCE[self.rng.randint(1, final_rank - 1)]
            track = append_transition(track, back)
            track = append_transition(track, STATUS_SEQUENCE[final_rank])
        return track

    def generate_issue(self, project: dict, sprint: dict | None, users: list) -> dict:
        final_rank = self.rng.randint(0, len(STATUS_SEQUENCE) - 1)
        reporter = self.rng.choice(users)
        assignee = self.rng.choice(users) if self.rng.random() > 0.3 else None
        return {
            "id": self._uuid(),
            "title": f"{self.rng.choice(ACTIONS)} {self.rng.choice(PARTS)}",
            "description": None,
            "status": STATUS_SEQUENCE[final_rank].value,
            "priority": self.rng.choice(list(IssuePriority)).value,
            "assignee_id": assignee["id"] if assignee else None,
            "reporter_id": reporter["id"],
            "project_id": project["id"],
            "sprint_id": sprint["id"] if sprint else None,
            "track": self.generate_track(final_rank),
        }

    @staticmethod
    def assign_orders(issues: list) -> None:
        """Dense 0..n-1 order values per (project, status) column"""
        columns = defaultdict(list)
        for issue in issues:
            columns[(issue["project_id"], issue["status"])].append(issue)
        by_id = {issue["id"]: issue for issue in issues}
        for members in columns.values():
            cards = [Card(id=i["id"], status=i["status"], order=0, track=i["track"]) for i in members]
            for placement in renumber(cards):
                by_id[placement.id]["order"] = placement.order

    # ── Main Generator ──────────────────────────────────────

    def generate_all(self, counts: dict[str, int] | None = None) -> dict[str, Any]:
        c = counts or {"users": 10, "projects": 2, "issues_per_project": 30}

        organization_id = "org_sample"
        users = [self.generate_user(i) for i in range(c["users"])]
        projects = [self.generate_project(i, organization_id) for i in range(c["projects"])]

        sprints, issues = [], []
        for project in projects:
            project_sprints = self.generate_sprints(project)
            sprints.extend(project_sprints)
            for _ in range(c["issues_per_project"]):
                sprint = self.rng.choice(project_sprints + [None])
                issues.append(self.generate_issue(project, sprint, users))

        self.assign_orders(issues)

        return {
            "generated_at": self.now.isoformat(),
            "generator": "Shopfloor Tracker Sample Board Generator v1.0",
            "seed": self.seed,
            "counts": {
                "users": len(users),
                "projects": len(projects),
                "sprints": len(sprints),
                "issues": len(issues),
            },
            "data": {
                "organization_id": organization_id,
                "users": users,
                "projects": projects,
                "sprints": sprints,
                "issues": issues,
            },
        }


# ── CLI ─────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Shopfloor Tracker Sample Board Generator")
    parser.add_argument("--users", type=int, default=10, help="Number of users")
    parser.add_argument("--projects", type=int, default=2, help="Number of projects")
    parser.add_argument("--issues", type=int, default=30, help="Issues per project")
    parser.add_argument("--output", type=str, default="sample-board.json", help="Output file")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    generator = SampleDataGenerator(seed=args.seed)
    data = generator.generate_all({
        "users": args.users,
        "projects": args.projects,
        "issues_per_project": args.issues,
    })

    with open(args.output, "w") as f:
        json.dump(data, f, indent=2, default=str)

    counts = data["counts"]
    print(f"✅ Sample board generated: {args.output}")
    print(f"   Users: {counts['users']}")
    print(f"   Projects: {counts['projects']}")
    print(f"   Sprints: {counts['sprints']}")
    print(f"   Issues: {counts['issues']}")


if __name__ == "__main__":
    main()
