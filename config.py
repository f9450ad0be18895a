"""Runtime configuration for the globe application."""

import argparse
from dataclasses import dataclass

DEFAULT_COASTLINES = "data/coastlines.json"
DEFAULT_COUNTRIES  = "data/countries.json"


@dataclass
class GlobeConfig:
    coastlines: str = DEFAULT_COASTLINES
    countries:  str = DEFAULT_COUNTRIES
    samples:    int = 4            # MSAA samples, 1 disables multisampling
    time_speedup: float = 1000.0   # simulated seconds per real second
    camera_distance: float = 15.0
    grid_step:  float = 15.0       # degrees between grid lines
    grid_subdivision: float = 1.0
    fps:        int = 60
    fetch_timeout: float = 10.0

    @property
    def frame_interval_ms(self):
        return max(1, int(1000 / max(self.fps, 1)))

    @classmethod
    def from_args(cls, args):
        return cls(coastlines=args.coastlines, countries=args.countries,
                   samples=max(1, args.samples), time_speedup=args.speedup,
                   fps=args.fps)


def build_parser():
    p = argparse.ArgumentParser(prog="ellipsoid-globe",
                                description="Rotating wireframe globe on a WGS84 ellipsoid.")
    p.add_argument("--coastlines", default=DEFAULT_COASTLINES, help="coastline dataset (path or URL)")
    p.add_argument("--countries", default=DEFAULT_COUNTRIES, help="country border dataset (path or URL)")
    p.add_argument("--samples", type=int, default=4, help="MSAA samples (1 = off)")
    p.add_argument("--speedup", type=float, default=1000.0, help="simulated seconds per real second")
    p.add_argument("--fps", type=int, default=60, help="target frame rate")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p
