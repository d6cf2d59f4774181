"""Seed demo alerts around Bogotá for local development."""
from __future__ import annotations

from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

from app import db
from app.config import get_settings
from app.services.alerts import append_report, create_alert
from app.utils.time import utcnow

DEMO_ALERTS = [
    {
        "title": "Accidente en la Calle 26",
        "description": "Two cars blocking the left lane near the airport exit.",
        "kind": "traffic",
        "severity": "high",
        "coordinates": [-74.1073, 4.6702],
        "address": "Av. Calle 26 # 68-35",
        "tags": ["accident", "airport"],
    },
    {
        "title": "Flooded underpass",
        "description": "Water above the kerb after the afternoon storm.",
        "kind": "natural",
        "severity": "medium",
        "coordinates": [-74.0721, 4.6097],
        "tags": ["rain"],
    },
    {
        "title": "Street lights out",
        "description": "Whole block is dark, walk in groups.",
        "kind": "security",
        "severity": "low",
        "coordinates": [-74.0601, 4.6486],
    },
]


def main() -> None:
    settings = get_settings()
    print(f"Using database: {settings.database_url}")

    db.init_engine()
    db.create_all()
    session = db.get_sessionmaker()()

    try:
        for index, fields in enumerate(DEMO_ALERTS):
            payload = dict(fields, expires_at=utcnow() + timedelta(hours=6 * (index + 1)))
            alert = create_alert(session, payload, creator_id=f"demo-user-{index}")
            append_report(session, alert.id, "demo-neighbour", "Still there.", "confirmation")
        print(f"Seeded {len(DEMO_ALERTS)} alerts.")
    finally:
        session.close()
        db.close_engine()


if __name__ == "__main__":
    main()
