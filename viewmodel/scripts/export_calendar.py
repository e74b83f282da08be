"""Export a tenant's rendered month calendar to JSON."""
from __future__ import annotations

import argparse
import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from portal.app import create_app
from portal.app.models import Tenant
from portal.app.services.calendar_service import tenant_calendar_props
from portal.extensions import db
from viewmodel.models.appointments import parse_day
from viewmodel.models.calendar_session import CalendarSession
from viewmodel.models.date_grid import ViewMode

EXPORT_PATH = Path(__file__).resolve().parent / "calendar_export.json"


def export_month(
    tenant_id: int,
    reference: date | None = None,
    *,
    config_name: str | None = None,
    output: Path = EXPORT_PATH,
) -> dict[str, Any]:
    app = create_app(config_name)
    with app.app_context():
        tenant = db.session.get(Tenant, tenant_id)
        if tenant is None:
            raise ValueError(f"Tenant {tenant_id} does not exist.")

        today = date.today()
        props = tenant_calendar_props(tenant, today)
        session = CalendarSession.from_page_props(
            props,
            tenant_timezone=props["timezone"],
            reference_date=reference or today,
            view_mode=ViewMode.MONTH,
        )
        payload = {
            "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "tenant_id": tenant.id,
            "view": session.render(),
        }
        session.teardown()

        output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return payload


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("tenant_id", type=int)
    parser.add_argument("--date", type=parse_day, default=None, help="YYYY-MM-DD")
    parser.add_argument("--output", type=Path, default=EXPORT_PATH)
    args = parser.parse_args(argv)

    result = export_month(args.tenant_id, args.date, output=args.output)
    print(json.dumps(result, indent=2))


if __name__ == "__main__":  # pragma: no cover - manual execution path
    main()
