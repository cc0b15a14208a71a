"""CLI entry point: lay out a case study and write an SVG snapshot."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from stepgraph.logging_config import setup_logging
from stepgraph.renderer import DARK_THEME, LIGHT_THEME, render_to_svg
from stepgraph.visualization import STRATEGIES, Visualization


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stepgraph",
        description="Render a case study step diagram to SVG",
    )
    parser.add_argument(
        "data_dir",
        nargs="?",
        help="Directory with nodes.json, edges.json and steps.json. If omitted, uses the bundled case study.",
    )
    parser.add_argument("--step", type=int, default=None, help="Step id to select")
    parser.add_argument("--layout", choices=STRATEGIES, default="hierarchical", help="Layout strategy")
    parser.add_argument(
        "--ticks", type=int, default=300,
        help="Simulation ticks to run before the snapshot (physics layout only)",
    )
    parser.add_argument("--light", action="store_true", help="Use the light theme")
    parser.add_argument("-o", "--output", default="stepgraph.svg", help="SVG file to write")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    vis = Visualization(strategy=args.layout)
    study = vis.load(args.data_dir)

    if args.layout == "physics":
        for _ in range(max(args.ticks, 0)):
            vis.apply_forces_tick()

    if args.step is not None:
        if study.step(args.step) is None:
            print(f"Step {args.step} not found. Known steps: {[s.id for s in study.steps]}")
            sys.exit(1)
        vis.select_step(args.step)
    else:
        vis.camera.fit(p.xy for p in vis.positions.values())
    vis.camera.snap()

    output = Path(args.output)
    stem = output.with_suffix("") if output.suffix == ".svg" else output
    render_to_svg(vis, str(stem), theme=LIGHT_THEME if args.light else DARK_THEME)

    summary = study.summary()
    print(f"{study.name}: {summary['nodes']} nodes, {summary['edges']} edges, {summary['steps']} steps")
    if args.step is not None:
        active = vis.relevance.active_nodes(args.step)
        print(f"Step {args.step}: {len(active)} active nodes, {len(study.edges_for_step(args.step))} edges")
    print(f"Wrote {stem}.svg")


if __name__ == "__main__":
    main()
