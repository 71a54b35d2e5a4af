"""
Simulation script -- drives a running API with a small field team.

Run against a local server:
    uvicorn main:app
    python simulate.py --rounds 5

Registers a handful of workers around Howrah (Kolkata), then pushes a
jittered position report for each of them every few seconds and prints
the resulting topology and selected route.
"""

import argparse
import asyncio
import random

import httpx

# Howrah, West Bengal (approx)
BASE_LAT, BASE_LNG = 22.5958, 88.2636

WORKERS = [
    {"id": "device-alpha", "name": "Worker-ALFA", "lat": 22.5960, "lng": 88.2640},
    {"id": "device-bravo", "name": "Worker-BRVO", "lat": 22.6010, "lng": 88.2700},
    {"id": "device-charlie", "name": "Worker-CHRL", "lat": 22.5900, "lng": 88.2580},
    {"id": "device-delta", "name": "Worker-DLTA", "lat": 22.6050, "lng": 88.2550},
    {"id": "device-echo", "name": "Worker-ECHO", "lat": 22.5850, "lng": 88.2750},
]


async def simulate(base_url: str, rounds: int, interval: float, mode: str):
    async with httpx.AsyncClient(base_url=base_url, timeout=60.0) as client:
        for w in WORKERS:
            resp = await client.post(
                "/api/v1/devices", json={"id": w["id"], "name": w["name"]}
            )
            resp.raise_for_status()
        print(f"  ✓ {len(WORKERS)} workers registered")

        await client.put("/api/v1/network/topology", json={"mode": mode})

        for n in range(1, rounds + 1):
            for w in WORKERS:
                w["lat"] += random.uniform(-0.0005, 0.0005)
                w["lng"] += random.uniform(-0.0005, 0.0005)
                await client.put(
                    f"/api/v1/devices/{w['id']}/location",
                    json={
                        "latitude": w["lat"],
                        "longitude": w["lng"],
                        "accuracy": random.uniform(5, 30),
                    },
                )

            snapshot = (await client.get("/api/v1/network")).json()
            responder = next(
                (d["name"] for d in snapshot["devices"] if d["emergency_responder"]),
                "-",
            )
            selected = snapshot["selected_route"]
            print(
                f"  round {n}: {len(snapshot['connections'])} connections "
                f"({snapshot['topology']}), responder={responder}, "
                f"status={snapshot['status']!r}"
            )
            if selected:
                print(
                    f"    → {selected['name']}: {selected['road_distance']:.1f} km, "
                    f"{selected['estimated_time']:.0f} min"
                )
            await asyncio.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--rounds", type=int, default=3)
    parser.add_argument("--interval", type=float, default=3.0)
    parser.add_argument(
        "--mode", default="emergency", choices=["emergency", "work-optimal", "mst"]
    )
    args = parser.parse_args()
    asyncio.run(simulate(args.base_url, args.rounds, args.interval, args.mode))


if __name__ == "__main__":
    main()
