"""Command-line interface for real-vs-AI image checks.

Usage:
    realcheck photo.jpg
    realcheck photo.jpg --json
    realcheck photo.jpg --model-id google/vit-base-patch16-224 --device cuda
    realcheck photo.jpg --config ./my_config.json

Exit codes: 0 verdict printed, 1 inference failed, 2 model failed to load,
3 invalid config file.
"""

import asyncio
import json
import logging
import sys

from dataclasses import replace

import click

from .adapter import InferenceError, ModelLoadError
from .config import EngineConfig
from .report import describe
from .session import AnalysisSession


@click.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "json_output", is_flag=True, help="Print the verdict as JSON.")
@click.option("--display", is_flag=True, help="Report the display-calibrated confidence.")
@click.option("--model-id", default=None, help="Image-classification model (default: from config).")
@click.option("--device", type=click.Choice(["auto", "cpu", "cuda"]), default=None, help="Device (default: from config).")
@click.option("--top-k", type=click.IntRange(min=1), default=None, help="Number of labels to request from the model.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    envvar="REALCHECK_CONFIG",
    default=None,
    help="Engine config JSON (default: packaged config).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(image, json_output, display, model_id, device, top_k, config_path, verbose):
    """Decide whether IMAGE is a real photograph or AI-generated."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = EngineConfig.load(config_path)
    except ValueError as e:
        click.echo(f"Error: invalid config: {e}", err=True)
        sys.exit(3)

    overrides = {"model_id": model_id, "device": device, "model_top_k": top_k}
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    session = AnalysisSession.from_config(config)

    click.echo(f"Analyzing {image} with {session.classifier.model_id}...", err=True)
    try:
        verdict = asyncio.run(session.analyze(image))
    except ModelLoadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)
    except InferenceError as e:
        click.echo(f"[ERROR] {image}: {e}", err=True)
        sys.exit(1)

    if json_output:
        out = verdict.to_dict(display=display)
        out["stage"] = verdict.stage
        out["rule"] = verdict.rule
        click.echo(json.dumps(out))
        return

    confidence = verdict.display_confidence if display else verdict.confidence
    label = "AI" if verdict.is_ai else "REAL"
    click.echo(f"[{label}]  confidence={confidence:.1%}  {image}")
    click.echo(f"  real={verdict.details.real_score:.4f}  ai={verdict.details.ai_score:.4f}  stage={verdict.stage}")
    if verdict.rule:
        click.echo(f"  rule={verdict.rule}")
    if verdict.matched:
        click.echo("  keywords: " + ", ".join(f"{kw} ({side})" for kw, side in verdict.matched))
    click.echo(describe(verdict))


if __name__ == "__main__":
    main()
