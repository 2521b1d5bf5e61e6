"""
Command-line entry point.

    python -m pygamm contours.csv --subject speaker --trajectory token \\
        --time measurement_no --response f2 --n-iter 100 --seed 1
    python -m pygamm --synthetic --n-iter 20 --jobs 4 --output fits.csv

Options may also come from a JSON file (``--config``) whose keys mirror
the keyword arguments of simulate(); explicit command-line options win.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pygamm.core.exceptions import PyGAMMError
from pygamm.data.simulate import simulate_trajectories
from pygamm.data.trajectories import TrajectoryData
from pygamm.montecarlo._common import FAILURE_POLICIES
from pygamm.montecarlo._sampler import InjectedEffect
from pygamm.montecarlo.solvers import simulate
from pygamm.montecarlo.variants import DEFAULT_VARIANTS, default_variants

logger = logging.getLogger("pygamm")

_SIMULATE_KEYS = (
    'n_iter', 'n_subjects', 'n_trajectories', 'seed', 'alpha', 'on_failure',
    'max_retries', 'require_convergence', 'n_jobs', 'timeout', 'conf_level',
    'label',
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pygamm",
        description="Estimate GAMM type-I/type-II error rates by resampling subjects",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("dataset", nargs="?", help="CSV/TSV file of trajectories")
    source.add_argument("--synthetic", action="store_true",
                        help="use a simulated pool (30 subjects x 40 trajectories x 11 points)")

    cols = parser.add_argument_group("columns")
    cols.add_argument("--subject", default="subject")
    cols.add_argument("--trajectory", default="trajectory")
    cols.add_argument("--time", default="time")
    cols.add_argument("--response", default="y")

    run = parser.add_argument_group("simulation")
    run.add_argument("--config", type=Path, help="JSON file with simulate() options")
    run.add_argument("--n-iter", dest="n_iter", type=int)
    run.add_argument("--n-subjects", dest="n_subjects", type=int)
    run.add_argument("--n-trajectories", dest="n_trajectories", type=int)
    run.add_argument("--seed", type=int)
    run.add_argument("--alpha", type=float)
    run.add_argument("--on-failure", dest="on_failure", choices=FAILURE_POLICIES)
    run.add_argument("--max-retries", dest="max_retries", type=int)
    run.add_argument("--require-convergence", dest="require_convergence",
                     action="store_true", default=None)
    run.add_argument("--jobs", dest="n_jobs", type=int)
    run.add_argument("--timeout", type=float, help="seconds per iteration")
    run.add_argument("--conf-level", dest="conf_level", type=float)
    run.add_argument("--label", help="name of the synthetic group column")
    run.add_argument("--variants", nargs="+", choices=DEFAULT_VARIANTS,
                     help="model variants to compare (default: all)")
    run.add_argument("--effect-size", dest="effect_size", type=float,
                     help="inject a group difference (type-II setup)")
    run.add_argument("--effect-shape", dest="effect_shape", default="constant",
                     choices=("constant", "peak"))

    out = parser.add_argument_group("output")
    out.add_argument("--output", type=Path, help="write every fit to this CSV")
    out.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    out.add_argument("-q", "--quiet", action="store_true", help="warnings only")
    return parser.parse_args(argv)


def load_config(path: Path | None) -> dict:
    if path is None:
        return {}
    with open(path) as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ValueError(f"{path}: expected a JSON object")
    unknown = sorted(set(config) - set(_SIMULATE_KEYS) - {'variants', 'effect'})
    if unknown:
        raise ValueError(f"{path}: unknown option(s) {unknown}")
    return config


def build_options(args: argparse.Namespace) -> dict:
    """Merge the JSON config with the command line."""
    options = load_config(args.config)
    for key in _SIMULATE_KEYS:
        value = getattr(args, key, None)
        if value is not None:
            options[key] = value
    if args.variants is not None:
        options['variants'] = args.variants
    if args.effect_size is not None:
        options['effect'] = {'size': args.effect_size, 'shape': args.effect_shape}
    if isinstance(options.get('effect'), dict):
        options['effect'] = InjectedEffect(**options['effect'])
    return options


def load_data(args: argparse.Namespace) -> TrajectoryData:
    if args.synthetic:
        return simulate_trajectories(seed=args.seed)
    return TrajectoryData.from_file(
        args.dataset,
        subject=args.subject,
        trajectory=args.trajectory,
        time=args.time,
        response=args.response,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        options = build_options(args)
        data = load_data(args)
        logger.info("Loaded %r", data)

        names = options.pop('variants', None)
        variants = default_variants(
            response=data.response,
            time=data.time,
            subject=data.subject,
            label=options.get('label', 'group'),
            names=tuple(names) if names is not None else None,
        )
        result = simulate(data, variants, **options)
    except (PyGAMMError, ValueError, OSError) as e:
        logger.error("%s", e)
        return 1

    print(result.summary())
    if args.output is not None:
        result.to_frame().to_csv(args.output, index=False)
        logger.info("Wrote %d fits to %s", len(result.results), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
