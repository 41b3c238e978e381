from __future__ import annotations

import argparse
import dataclasses
import logging
import time
from collections import Counter
from pathlib import Path

from tqdm import tqdm

from stray_triage.config import get_settings
from stray_triage.contracts import Coordinates
from stray_triage.io import load_image, to_data_uri
from stray_triage.store import ReportStore
from stray_triage.triage import TriageEngine


def _iter_images(input_dir: Path):
    exts = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}
    for p in sorted(input_dir.rglob("*")):
        if p.is_file() and p.suffix.lower() in exts:
            yield p


def main() -> int:
    parser = argparse.ArgumentParser(description="Triage a folder of stray-animal photos into the report store.")
    parser.add_argument("--input", required=True, type=str, help="Input directory containing photos.")
    parser.add_argument("--lat", required=True, type=float, help="Latitude shared by every photo.")
    parser.add_argument("--lon", required=True, type=float, help="Longitude shared by every photo.")
    parser.add_argument("--db", type=str, default=None, help="Report store path (default: REPORTS_DB_PATH).")
    parser.add_argument("--simulate", action="store_true", help="Skip the live classifier.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the simulated classifier.")
    args = parser.parse_args()

    settings = get_settings()
    overrides = {}
    if args.db:
        overrides["db_path"] = args.db
    if args.simulate:
        overrides["force_simulation"] = True
    if args.seed is not None:
        overrides["simulation_seed"] = args.seed
    settings = dataclasses.replace(settings, **overrides)
    logging.basicConfig(level=settings.log_level)

    input_dir = Path(args.input)
    if not input_dir.exists():
        raise FileNotFoundError(f"Input dir not found: {input_dir}")

    coords = Coordinates(latitude=args.lat, longitude=args.lon)
    engine = TriageEngine.from_settings(settings)
    store = ReportStore(settings.db_path)

    images = list(_iter_images(input_dir))
    if not images:
        print(f"No images found under {input_dir}")
        return 0

    by_priority: Counter = Counter()
    unknown_species = 0

    t0 = time.perf_counter()
    for img_path in tqdm(images, desc="Triaging", unit="img"):
        image_data = to_data_uri(load_image(str(img_path)))
        result = engine.triage(image_data, coords)
        store.create(result, image_data=image_data, coordinates=coords)

        by_priority[result.priorityScore] += 1
        if result.triageTags[0] == "UnknownSpecies":
            unknown_species += 1

    t1 = time.perf_counter()
    priorities = " ".join(f"{p}={by_priority[p]}" for p in sorted(by_priority, reverse=True))
    print(
        "Done.\n"
        f"- total: {len(images)}\n"
        f"- priority: {priorities}\n"
        f"- unknown_species: {unknown_species}\n"
        f"- elapsed_s: {t1 - t0:.2f}\n"
        f"- store: {Path(settings.db_path).resolve()}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
