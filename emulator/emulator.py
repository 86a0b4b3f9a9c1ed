# emulator/emulator.py
#
# CrowdSense – People Counter Emulator
#
# Generates a plausible people count for a single room and posts it to the
# local people_counter API, so the dashboard has something to poll during
# development. The count drifts as a bounded random walk with occasional
# crowd bursts that push it over the default alert threshold.

import os
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict

import requests

API_URL = os.getenv("API_URL", "http://127.0.0.1:8000/rest/v1/people_counter")
EMIT_SECONDS = float(os.getenv("EMIT_SECONDS", "5"))

MIN_COUNT = 0
MAX_COUNT = 20


@dataclass
class CounterState:
    """
    Random-walk people count.

    Normal occupancy hovers around `baseline`; a burst adds a few people for
    a handful of steps, then the count drifts back.
    """

    people_count: int = 4
    baseline: int = 4
    burst_steps_left: int = 0

    def step(self) -> None:
        if self.burst_steps_left == 0 and random.random() < 0.05:
            # 5% chance each step to start a crowd burst
            self.burst_steps_left = random.randint(3, 8)

        if self.burst_steps_left > 0:
            self.people_count += random.randint(1, 3)
            self.burst_steps_left -= 1
        else:
            # pull gently back toward the baseline
            drift = 0
            if self.people_count > self.baseline:
                drift = -1
            elif self.people_count < self.baseline:
                drift = 1
            self.people_count += drift + random.randint(-1, 1)

        self.people_count = max(MIN_COUNT, min(self.people_count, MAX_COUNT))

    def to_payload(self) -> Dict:
        return {
            "created_at": datetime.now(timezone.utc).isoformat(),
            "people_count": int(self.people_count),
        }


def main() -> None:
    state = CounterState()
    print(f"[emulator] Sending people counts to {API_URL} every {EMIT_SECONDS}s", flush=True)

    while True:
        state.step()
        payload = state.to_payload()
        try:
            r = requests.post(API_URL, json=payload, timeout=2)
            print("[emulator]", r.status_code, payload, flush=True)
        except requests.RequestException as exc:
            print("[emulator] error sending:", exc, flush=True)
        time.sleep(EMIT_SECONDS)


if __name__ == "__main__":
    main()
