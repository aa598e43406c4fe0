#!/usr/bin/env python3
"""Quick helper to inspect raw NRGKick API payloads and their normalized form."""

import asyncio
import json
import sys

from nrgkick_panel.config import Config, resolve_device_config
from nrgkick_panel.services.device_client import DeviceClient
from nrgkick_panel.services.status_normalizer import StatusNormalizer
from nrgkick_panel.util.logging import setup_logging


async def main() -> int:
    log = setup_logging(debug=True)
    cfg = Config.load(sys.argv[1] if len(sys.argv) > 1 else None)
    device = resolve_device_config(cfg.device, proxy_url=cfg.panel.proxy_url)
    print("Configured?", device.configured or device.proxy_mode)

    async with DeviceClient(device, log, timeout=cfg.proxy.timeout) as client:
        for endpoint in ("/info", "/control", "/values"):
            print(f"{endpoint}:")
            print(json.dumps(await client.request(endpoint), indent=2))

        normalizer = StatusNormalizer(client, log)
        print("Device info:", await normalizer.fetch_device_info())
        print("Live status:", await normalizer.fetch_live_status())
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
