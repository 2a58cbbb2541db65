import json
import random
from pathlib import Path
from quest_route_ai import planner


def build_catalog(n: int = 60, seed: int = 7) -> dict:
    rng = random.Random(seed)
    quests = []
    for i in range(1, n + 1):
        quests.append(
            {
                "id": i,
                "name": f"Quest {i}",
                "zone": f"Zone {i % 12}",
                "xp": rng.randrange(1000, 12000, 250),
                "faction": "Both",
                "category": "Quest",
                "lat": rng.uniform(-40.0, 40.0),
                "lng": rng.uniform(-60.0, 60.0),
            }
        )
    return {"quests": quests, "items": []}


def main() -> None:
    tmp = Path("prof_tmp")
    tmp.mkdir(exist_ok=True)
    catalog_path = tmp / "catalog.json"
    with open(catalog_path, "w") as f:
        json.dump(build_catalog(), f)
    planner.main(
        [
            "--catalog",
            str(catalog_path),
            "--all-filtered",
            "--output",
            str(tmp / "route.csv"),
            "--gpx",
            str(tmp / "route.gpx"),
        ]
    )


if __name__ == "__main__":
    main()
