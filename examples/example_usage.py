"""Example: drive the service layer directly (no Flask).

Controllers are a thin layer; the presence logic lives in the services.
"""

import importlib

from config import get_settings_module

from src.presence_system.presence_system.container import build_container
from src.presence_system.presence_system.presence.service import PresenceReport


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    result = container.presence_service.report_presence(
        PresenceReport(employee_code="EMP041", device_id="ESP32-LOBBY", signal_strength=-61, source="example")
    )
    print(result.status.value, result.event.event_id)
    print(container.presence_service.get_presence_status("EMP041").to_dict())
    print(container.presence_sweeper.run_once().to_dict())


if __name__ == "__main__":
    main()
