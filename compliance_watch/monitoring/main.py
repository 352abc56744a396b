import threading

import uvicorn

from compliance_watch.common.local_bind import ensure_local_bind
from compliance_watch.monitoring.app import app
from compliance_watch.monitoring.jobs import get_default_monitor


def run(host: str = "127.0.0.1", port: int = 8010, *, with_dispatcher: bool = True) -> None:
    ensure_local_bind(host)
    stop_event = threading.Event()
    if with_dispatcher:
        driver = threading.Thread(
            target=get_default_monitor().dispatcher.run_forever,
            args=(stop_event,),
            name="dispatcher",
            daemon=True,
        )
        driver.start()
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        stop_event.set()


if __name__ == "__main__":
    run()
