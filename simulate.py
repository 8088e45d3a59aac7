#!/usr/bin/env python3
"""
Simulated watering controller for exercising a running relay.
Run with: python3 simulate.py --url http://127.0.0.1:3000
"""
import sys
import argparse
import logging
from plantrelay.config import RELAY_URL, DEVICE_TIMEOUT
from plantrelay.device import DeviceLoop, RelayClient

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)

def main(argv=None):
    parser = argparse.ArgumentParser(description="Simulate the watering controller")
    parser.add_argument("--url", default=RELAY_URL, help="relay base URL")
    parser.add_argument("--timeout", type=float, default=DEVICE_TIMEOUT)
    parser.add_argument("--steps", type=int, default=None,
                        help="stop after this many loop iterations")
    args = parser.parse_args(argv)

    loop = DeviceLoop(RelayClient(args.url, timeout=args.timeout))
    logger.info(f"Simulating device against {args.url}")
    try:
        loop.run_forever(steps=args.steps)
    except KeyboardInterrupt:
        logger.info("Simulator stopped by user")
    logger.info(f"Client status: {loop.client.get_status()}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
