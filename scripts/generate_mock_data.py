"""
Synthetic PeMS-like corridor generator.

Outputs CSVs under data/ matching the loader schema:
- stations: station, freeway, direction, county, city, abs_pm, length, lanes
- readings: timestamp (5-minute), station, abs_pm, speed, flow, occupancy
- weather: hourly timestamp, precip (inches)

One recurring bottleneck is injected: during the AM and PM peaks the stations
just upstream (lower postmile, northbound) queue below 40 mph while the
bottleneck station and everything downstream run near free flow. Rainy days
lower speeds and flows across the corridor and lengthen the queue.
"""

from pathlib import Path
from datetime import datetime
import argparse
import numpy as np
import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
DATA = ROOT / "data"

COUNTIES = [("Orange", ["Irvine", "Costa Mesa"]), ("Los Angeles", ["Long Beach", "Carson"])]
FREE_FLOW = 65.0


def make_stations(n_stations: int, rng: np.random.Generator) -> pd.DataFrame:
    pm = np.round(np.cumsum(rng.uniform(0.35, 0.65, size=n_stations)), 3)
    rows = []
    for i, p in enumerate(pm):
        county, cities = COUNTIES[0] if i < n_stations // 2 else COUNTIES[1]
        rows.append(
            {
                "station": str(717000 + i * 7),
                "freeway": "405",
                "direction": "N",
                "county": county,
                "city": cities[i % len(cities)],
                "abs_pm": float(p),
                "length": round(float(rng.uniform(0.3, 0.6)), 3),
                "lanes": int(rng.choice([4, 5, 6])),
            }
        )
    return pd.DataFrame(rows)


def _peak_weight(minutes: np.ndarray) -> np.ndarray:
    """0..1 congestion intensity with AM (7-9h) and PM (16-19h) peaks."""
    am = np.exp(-0.5 * ((minutes - 8 * 60) / 45.0) ** 2)
    pm = np.exp(-0.5 * ((minutes - 17.5 * 60) / 70.0) ** 2)
    return np.clip(am + pm, 0.0, 1.0)


def generate_mock_data(
    n_stations: int = 16,
    n_days: int = 10,
    start_date: datetime = datetime(2016, 1, 4),
    bottleneck_index: int | None = None,
    rain_days: int = 3,
    seed: int | None = 42,
) -> dict:
    rng = np.random.default_rng(seed)
    stations = make_stations(n_stations, rng)
    b = bottleneck_index if bottleneck_index is not None else n_stations // 2
    rainy = set(rng.choice(n_days, size=min(rain_days, n_days), replace=False).tolist())

    times = pd.date_range(start_date, periods=n_days * 288, freq="5min")
    minutes = (times.hour * 60 + times.minute).to_numpy()
    day_idx = ((times - pd.Timestamp(start_date)).days).to_numpy()
    weight = _peak_weight(minutes)
    is_rain = np.isin(day_idx, list(rainy))

    frames = []
    for i, st in stations.iterrows():
        base_speed = FREE_FLOW - rng.normal(0, 1.5, size=len(times))
        speed = base_speed * np.where(is_rain, 0.88, 1.0)
        # Queue behind the bottleneck grows with peak intensity (longer when raining)
        queue_len = np.floor(weight * np.where(is_rain, 4, 3)).astype(int)
        in_queue = (i < b) & (b - i <= queue_len) & (weight > 0.3)
        speed = np.where(in_queue, rng.uniform(18, 34, size=len(times)), speed)
        speed = np.clip(speed, 3.0, 80.0)

        lanes = st["lanes"]
        flow = lanes * (90 + 60 * weight) * np.where(is_rain, 0.92, 1.0)
        flow = np.where(in_queue, flow * 0.8, flow) + rng.normal(0, 10, size=len(times))
        flow = np.clip(flow, 0, None)
        occupancy = np.clip(flow / (lanes * 12.0 * np.maximum(speed, 1.0)), 0, 1)

        frames.append(
            pd.DataFrame(
                {
                    "timestamp": times,
                    "station": st["station"],
                    "abs_pm": st["abs_pm"],
                    "speed": np.round(speed, 1),
                    "flow": np.round(flow).astype(int),
                    "occupancy": np.round(occupancy, 4),
                }
            )
        )
    readings = (
        pd.concat(frames, ignore_index=True)
        .sort_values(["timestamp", "abs_pm"], kind="mergesort")
        .reset_index(drop=True)
    )

    hours = pd.date_range(start_date, periods=n_days * 24, freq="1h")
    h_day = ((hours - pd.Timestamp(start_date)).days).to_numpy()
    precip = np.where(
        np.isin(h_day, list(rainy)),
        np.round(rng.gamma(0.6, 0.04, size=len(hours)), 2),
        0.0,
    )
    weather = pd.DataFrame({"timestamp": hours, "precip": precip})
    # Make sure every rainy day clears the default 0.1 in threshold
    for d in rainy:
        first_hour = d * 24 + 7
        weather.loc[first_hour, "precip"] = max(weather.loc[first_hour, "precip"], 0.15)

    return {"stations": stations, "readings": readings, "weather": weather}


def main():
    ap = argparse.ArgumentParser(description="Generate a synthetic PeMS corridor")
    ap.add_argument("--stations", type=int, default=16)
    ap.add_argument("--days", type=int, default=10)
    ap.add_argument("--rain-days", type=int, default=3)
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--out", type=Path, default=DATA)
    args = ap.parse_args()

    tables = generate_mock_data(
        n_stations=args.stations,
        n_days=args.days,
        rain_days=args.rain_days,
        seed=args.seed,
    )
    args.out.mkdir(parents=True, exist_ok=True)
    for name, df in tables.items():
        df.to_csv(args.out / f"{name}.csv", index=False)
        print(f"Wrote {len(df)} rows -> {args.out / (name + '.csv')}")


if __name__ == "__main__":
    main()
