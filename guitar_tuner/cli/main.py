"""Main entry point for the guitar tuner CLI."""

import json
import sys
from typing import Optional

import click

from ..audio.frame_sources import WavFileFrameSource
from ..audio.tones import generate_tone, success_chime
from ..core.config import FixedConfigSource, SettingsManager
from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_utils import get_note_name
from ..services.tuning_service import TuningService
from ..tuner_types import ConfigurationError, FrameResult, SessionConfig, TuningDefinition
from ..tunings import TUNINGS, get_tuning, parse_tuning, tuning_names
from ..tuning_session import TuningSessionController

logger = get_logger(__name__)


def _resolve_tuning(settings: SettingsManager, name: Optional[str], custom: Optional[str]) -> TuningDefinition:
    try:
        if custom:
            return parse_tuning(custom)
        return get_tuning(name or settings.get("default_tuning"))
    except ConfigurationError as e:
        raise click.BadParameter(str(e), param_hint="--tuning/--custom")


def _session_config(settings: SettingsManager, tolerance: Optional[int], sensitivity: Optional[float]) -> SessionConfig:
    current = settings.snapshot()
    return SessionConfig(
        tolerance_cents=current.tolerance_cents if tolerance is None else tolerance,
        sensitivity=current.sensitivity if sensitivity is None else sensitivity,
    )


class ConsoleReporter:
    """Prints frame results as plain text lines."""

    def __init__(self, tuning: TuningDefinition, verbose: bool = True, chime=None):
        self.tuning = tuning
        self.verbose = verbose
        self.chime = chime
        self.completed = False
        self.pitched_frames = 0

    def __call__(self, result: FrameResult) -> None:
        if result.pitch is None:
            return
        self.pitched_frames += 1

        status = result.tuning_status
        if self.verbose:
            line = f"{get_note_name(result.pitch):>4} {result.pitch:8.2f} Hz"
            if status is not None:
                target = self.tuning[status.string_index]
                marker = "in tune" if status.is_in_tune else ("sharp" if status.is_sharp else "flat")
                line += f"  string {status.string_index + 1} ({target.note})  {status.cents:+d}c  {marker}"
            click.echo(line)

        if result.in_tune_edge and status is not None:
            click.echo(click.style(f"String {status.string_index + 1} in tune", fg="green"))
        if result.session_complete:
            self.completed = True
            click.echo(click.style(f"All {len(self.tuning)} strings tuned!", fg="green", bold=True))
            if self.chime:
                self.chime()

    def summary(self, tuned) -> str:
        marks = " ".join(
            f"{target.note}{'*' if done else '-'}" for target, done in zip(self.tuning, tuned)
        )
        return f"Tuned strings: {marks} ({sum(tuned)}/{len(self.tuning)})"


tuning_options = [
    click.option("--tuning", "-t", "tuning_name", default=None, help="Preset tuning name (see 'tunings')."),
    click.option("--custom", default=None, help='Custom tuning, e.g. "D:73.42,A:110,D:146.83".'),
    click.option("--tolerance", type=click.IntRange(0, 8), default=None, help="In-tune band in cents."),
    click.option("--sensitivity", type=click.FloatRange(0.001, 0.1), default=None, help="Microphone sensitivity."),
    click.option("--ratchet/--no-ratchet", default=True, help="Keep strings marked tuned after they drift."),
]


def with_tuning_options(func):
    for option in reversed(tuning_options):
        func = option(func)
    return func


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option("--config-dir", type=click.Path(file_okay=False), default=None, help="Settings directory.")
@click.pass_context
def cli(ctx, debug, config_dir):
    """Guitar tuner - detect pitch and tune every string of a tuning."""
    setup_logging(level="DEBUG" if debug else None)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = SettingsManager(config_dir)


@cli.command()
def tunings():
    """List the preset tunings."""
    for tuning in TUNINGS:
        click.echo(click.style(tuning.name, bold=True))
        for index, target in enumerate(tuning):
            click.echo(f"  {index + 1}. {target.note:<3} {get_note_name(target.frequency):<4} {target.frequency:7.2f} Hz")


@cli.command()
def devices():
    """List audio input devices."""
    from ..audio.sound_device import list_input_devices

    for device in list_input_devices():
        click.echo(
            f"{device['id']}: {device['name']} "
            f"({device['channels']} ch, {device['default_samplerate'] / 1000:.1f} kHz)"
        )


@cli.command()
@with_tuning_options
@click.option("--device", type=int, default=None, help="Audio input device ID.")
@click.option("--sample-rate", type=int, default=None, help="Sample rate in Hz.")
@click.option("--frame-size", type=click.Choice(["2048", "4096", "8192", "16384"]), default=None, help="Samples per frame.")
@click.option("--duration", type=float, default=None, help="Stop after this many seconds.")
@click.option("--chime/--no-chime", default=True, help="Play a chime when every string is tuned.")
@click.pass_context
def listen(ctx, tuning_name, custom, tolerance, sensitivity, ratchet, device, sample_rate, frame_size, duration, chime):
    """Tune from a live audio input."""
    from ..audio.sound_device import SoundDeviceFrameSource, play_samples

    settings: SettingsManager = ctx.obj["settings"]
    tuning = _resolve_tuning(settings, tuning_name, custom)
    config = _session_config(settings, tolerance, sensitivity)
    sample_rate = sample_rate or settings.get("sample_rate")
    frame_size = int(frame_size) if frame_size else settings.get("frame_size")
    max_frames = int(duration * sample_rate / frame_size) if duration else None

    try:
        source = SoundDeviceFrameSource(device_id=device, sample_rate=sample_rate, frame_size=frame_size)
    except Exception as e:
        logger.debug("Audio input failed to open", exc_info=True)
        raise click.ClickException(f"Could not open audio input: {e}")

    reporter = ConsoleReporter(
        tuning, chime=(lambda: play_samples(success_chime(sample_rate), sample_rate)) if chime else None
    )
    service = TuningService(source, FixedConfigSource(config), TuningSessionController(ratchet_tuned_strings=ratchet))
    tuned = ()

    def remember(result: FrameResult) -> None:
        nonlocal tuned
        tuned = result.tuned_strings
        reporter(result)

    click.echo(f"Listening for {tuning}. Press Ctrl+C to stop.")
    with source:
        try:
            service.run(tuning, remember, max_frames=max_frames)
        except KeyboardInterrupt:
            click.echo("Stopped.")
    click.echo(reporter.summary(tuned or (False,) * len(tuning)))


@cli.command()
@with_tuning_options
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--frame-size", type=click.Choice(["2048", "4096", "8192", "16384"]), default="4096", help="Samples per frame.")
@click.option("--gain", type=float, default=1.0, help="Gain applied to the file's samples.")
@click.option("--quiet", "-q", is_flag=True, help="Only print events and the summary.")
@click.pass_context
def analyze(ctx, tuning_name, custom, tolerance, sensitivity, ratchet, path, frame_size, gain, quiet):
    """Run a tuning session over an audio file."""
    settings: SettingsManager = ctx.obj["settings"]
    tuning = _resolve_tuning(settings, tuning_name, custom)
    config = _session_config(settings, tolerance, sensitivity)

    try:
        source = WavFileFrameSource(path, frame_size=int(frame_size), gain=gain)
    except RuntimeError as e:
        logger.debug(f"Could not open {path}", exc_info=True)
        raise click.ClickException(f"Could not read {path}: {e}")

    reporter = ConsoleReporter(tuning, verbose=not quiet)
    controller = TuningSessionController(ratchet_tuned_strings=ratchet)
    tuned = (False,) * len(tuning)

    def remember(result: FrameResult) -> None:
        nonlocal tuned
        tuned = result.tuned_strings
        reporter(result)

    with source:
        frames = TuningService(source, FixedConfigSource(config), controller).run(tuning, remember)

    click.echo(f"Analyzed {frames} frames, {reporter.pitched_frames} with pitch.")
    click.echo(reporter.summary(tuned))
    if reporter.completed:
        click.echo("Session complete.")


@cli.command()
@click.option("--tuning", "-t", "tuning_name", default=None, help="Preset tuning name.")
@click.option("--custom", default=None, help="Custom tuning.")
@click.option("--string", "-s", "string_number", type=int, default=None, help="String number (1-based); all strings if omitted.")
@click.option("--duration", type=float, default=1.5, help="Tone length in seconds.")
@click.option("--sample-rate", type=int, default=44100, help="Sample rate in Hz.")
@click.pass_context
def tone(ctx, tuning_name, custom, string_number, duration, sample_rate):
    """Play reference tones for a tuning."""
    from ..audio.sound_device import play_samples

    tuning = _resolve_tuning(ctx.obj["settings"], tuning_name, custom)
    if string_number is None:
        targets = list(tuning)
    elif 1 <= string_number <= len(tuning):
        targets = [tuning[string_number - 1]]
    else:
        raise click.BadParameter(f"must be between 1 and {len(tuning)}", param_hint="--string")

    for target in targets:
        click.echo(f"Playing {target}")
        play_samples(generate_tone(target.frequency, duration, sample_rate), sample_rate)


@cli.group()
def settings():
    """Show or change persisted settings."""


@settings.command("show")
@click.pass_context
def settings_show(ctx):
    """Print the current settings."""
    manager: SettingsManager = ctx.obj["settings"]
    for key, value in manager.settings.items():
        click.echo(f"{key} = {value}")


@settings.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx, key, value):
    """Change one setting, e.g. 'settings set tolerance_cents 3'."""
    manager: SettingsManager = ctx.obj["settings"]
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value
    if key == "default_tuning":
        try:
            parsed = get_tuning(str(value)).name
        except ConfigurationError:
            raise click.BadParameter(
                f"unknown tuning, choose from: {', '.join(tuning_names())}", param_hint="VALUE"
            )
    try:
        saved = manager.update({key: parsed})
    except KeyError as e:
        raise click.BadParameter(str(e.args[0]), param_hint="KEY")
    if not saved:
        raise click.ClickException(f"Could not write {manager.config_file}")
    click.echo(f"{key} = {manager.get(key)}")


@settings.command("reset")
@click.pass_context
def settings_reset(ctx):
    """Restore the default settings."""
    manager: SettingsManager = ctx.obj["settings"]
    if not manager.reset():
        raise click.ClickException(f"Could not write {manager.config_file}")
    click.echo("Settings reset to defaults.")


def main() -> int:
    """Console script entry point."""
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main())
