#!/usr/bin/env python
"""
Generate sample images with the Reve API, optionally several in parallel.

Usage:
    python scripts/generate_sample.py [--output-dir DIR] [--prompt TEXT] [--count N] [--workers N]
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reve import (
    CreateParams,
    ReveClient,
    ReveError,
    errors,
    estimate_create,
    successful,
)


def main() -> None:
    """Generate sample images."""
    parser = argparse.ArgumentParser(description="Generate sample images")
    parser.add_argument(
        "--output-dir",
        default="samples",
        help="Directory for the images (default: samples)",
    )
    parser.add_argument(
        "--prompt",
        default="a serene mountain landscape at dawn with misty valleys",
        help="Prompt for generation",
    )
    parser.add_argument("--count", type=int, default=1, help="Number of images")
    parser.add_argument("--workers", type=int, default=1, help="Parallel requests")

    args = parser.parse_args()

    cost = estimate_create().total_credits * args.count
    print(f"Generating {args.count} image(s) with prompt: {args.prompt}")
    print(f"Estimated cost: {cost} credits")
    print()

    try:
        with ReveClient() as client:
            results = client.images.create_batch(
                [CreateParams(prompt=args.prompt) for _ in range(args.count)],
                max_workers=args.workers,
            )
    except ReveError as e:
        print(f"❌ Generation failed: {e}")
        sys.exit(1)

    out_dir = Path(args.output_dir)
    for i, result in enumerate(successful(results)):
        path = out_dir / f"sample_{i}.png"
        result.save_to(path)
        print(f"✓ Saved {path} ({result.credits_used} credits, request {result.request_id})")

    for err in errors(results):
        print(f"❌ {err}")
    if errors(results):
        sys.exit(1)


if __name__ == "__main__":
    main()
