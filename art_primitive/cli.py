import argparse
import json
import logging
import sys

from .config import GeometrizeConfig, GeometrizeError
from .geometrize import geometrize
from .imaging import load_image, save_image


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="art-primitive",
        description="Approximate an image with a fixed number of shapes.")
    p.add_argument("input", help="image to approximate")
    p.add_argument("-o", "--output", required=True, help="output image path")
    p.add_argument("--shapes", type=int, default=100, help="number of shapes")
    p.add_argument("--mutations", type=int, default=100,
                   help="hill-climbing trials per shape")
    p.add_argument("--scale-down", type=float, default=1.0,
                   help="search at 1/FACTOR of the output resolution")
    p.add_argument("--dx", type=int, default=None, help="output width")
    p.add_argument("--dy", type=int, default=None, help="output height")
    p.add_argument("--kinds", default="triangle",
                   help="comma list of triangle,rectangle,ellipse")
    p.add_argument("--alpha", type=int, default=128, help="1..255, 0 = searched")
    p.add_argument("--restarts", type=int, default=1,
                   help="random restarts per shape")
    p.add_argument("--workers", type=int, default=1,
                   help="threads evaluating restarts")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--accept-ties", action="store_true",
                   help="accept equal-error mutations")
    p.add_argument("--background", default=None, help="RRGGBB canvas colour")
    p.add_argument("--json", dest="json_path", default=None,
                   help="also write the committed shapes as JSON")
    p.add_argument("-v", "--verbose", action="count", default=0)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose > 1 else (
        logging.INFO if args.verbose else logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.dx is not None and args.dx < 1 or args.dy is not None and args.dy < 1:
            raise GeometrizeError("--dx/--dy must be >= 1")
        config = GeometrizeConfig(
            shape_count=args.shapes,
            mutations_per_shape=args.mutations,
            shape_kinds=args.kinds,
            scale_down=args.scale_down,
            rng_seed=args.seed,
            alpha=args.alpha,
            restarts=args.restarts,
            accept_ties=args.accept_ties,
            workers=args.workers,
            background=args.background,
        )
        target = load_image(args.input, args.dx, args.dy)
        result = geometrize(target, config)
    except GeometrizeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    save_image(result.image, args.output)
    print(f"[OK] Wrote image to: {args.output}")

    if args.json_path:
        payload = {
            "size": list(result.size),
            "background": list(result.background),
            "seed": result.seed,
            "error": result.error,
            "shapes": result.shapes_json(),
        }
        with open(args.json_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        print(f"[OK] Wrote JSON to: {args.json_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
