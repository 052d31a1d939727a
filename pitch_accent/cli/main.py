"""Command line interface for pitch_accent."""

import json
import sys
from typing import Optional

import click

from ..calibration.voice_range import VoiceRangeCalibrator
from ..core.config import ConfigManager
from ..core.errors import ConfigurationError
from ..core.factory import ComponentFactory
from ..logging_config import get_logger, setup_logging
from ..pitch_types import PitchSeries
from ..pitch_utils import calculate_statistics, get_note_name, smooth_pitch_series

logger = get_logger("pitch_accent.cli")

# Recordings shorter than this cannot be scored meaningfully
MIN_RECORDING_SECONDS = 0.5


def _analyze_file(factory: ComponentFactory, path: str, interval: float) -> PitchSeries:
    from ..audio.pitch_tracking_service import analyze_recording
    from ..audio.wav_io import load_wav

    samples, sample_rate = load_wav(path)
    return analyze_recording(
        samples,
        sample_rate,
        interval=interval,
        extractor_config=factory.pitch_extractor_config(),
    )


def _series_to_json(series: PitchSeries):
    return [
        {
            "timestamp": round(p.timestamp, 4),
            "frequency": round(p.frequency, 2),
            "confidence": round(p.confidence, 4),
            "energy": round(p.energy, 5),
        }
        for p in series
    ]


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override the log level of all pitch_accent modules",
)
@click.option(
    "--config-dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Directory holding the JSON configuration files",
)
@click.pass_context
def main(ctx, log_level: Optional[str], config_dir: Optional[str]):
    """Pitch analysis and pitch-accent scoring."""
    setup_logging(log_level)
    ctx.obj = ComponentFactory(ConfigManager(config_dir))


@main.command()
def devices():
    """List audio input devices."""
    from ..audio.sounddevice_input import list_input_devices

    inputs = list_input_devices()
    if not inputs:
        click.echo("No audio input devices found")
        return
    click.echo("\nAvailable audio input devices:")
    for device in inputs:
        click.echo(
            f"{device['id']}: {device['name']} "
            f"(Inputs: {device['channels']}, {device['default_samplerate']:.0f}Hz)"
        )


@main.command()
@click.argument("wav_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--interval", default=0.1, show_default=True, help="Analysis interval in seconds")
@click.option("--smooth", default=1, show_default=True, help="Moving average window in points")
@click.option("--json", "as_json", is_flag=True, help="Print the pitch points as JSON")
@click.pass_obj
def analyze(factory: ComponentFactory, wav_file: str, interval: float, smooth: int, as_json: bool):
    """Print the pitch curve of a recording."""
    series = _analyze_file(factory, wav_file, interval)
    if smooth > 1:
        series = smooth_pitch_series(series, smooth)

    if as_json:
        click.echo(json.dumps(_series_to_json(series), indent=2))
        return

    for point in series:
        note = get_note_name(point.frequency)
        click.echo(
            f"{point.timestamp:7.2f}s  {point.frequency:7.1f}Hz  {note:>4}  "
            f"conf={point.confidence:.2f}  energy={point.energy:.3f}"
        )
    click.echo(str(calculate_statistics(series)))


@main.command()
@click.argument("reference", type=click.Path(exists=True, dir_okay=False))
@click.argument("user", type=click.Path(exists=True, dir_okay=False))
@click.option("--interval", default=0.1, show_default=True, help="Analysis interval in seconds")
@click.option("--json", "as_json", is_flag=True, help="Print the scores as JSON")
@click.pass_obj
def score(factory: ComponentFactory, reference: str, user: str, interval: float, as_json: bool):
    """Score a user recording against a reference recording."""
    reference_series = _analyze_file(factory, reference, interval)
    user_series = _analyze_file(factory, user, interval)

    floor = factory.normalizer_config().confidence_floor
    stats = calculate_statistics(user_series, floor)
    if stats.voiced_points == 0:
        click.echo("Warning: no speech detected in the user recording", err=True)
    elif user_series.duration < MIN_RECORDING_SECONDS:
        click.echo("Warning: user recording is too short to score reliably", err=True)

    results = factory.create_scorer().score(reference_series, user_series)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "pitch_score": round(results.pitch_score, 2),
                    "rhythm_score": round(results.rhythm_score, 2),
                    "overall_score": round(results.overall_score, 2),
                    "reference_points": results.reference_points,
                    "user_points": results.user_points,
                    "alignment": round(results.dtw.alignment_score, 4),
                    "pitch_similarity": round(results.dtw.pitch_similarity, 4),
                    "contour_similarity": round(results.dtw.contour_similarity, 4),
                    "range_similarity": round(results.dtw.range_similarity, 4),
                },
                indent=2,
            )
        )
        return

    click.echo(f"Pitch score:   {results.pitch_score:5.1f}")
    click.echo(f"Rhythm score:  {results.rhythm_score:5.1f}")
    click.echo(f"Overall score: {results.overall_score:5.1f}")
    click.echo(str(results.dtw))
    click.echo(f"Reference {results.reference_rhythm}")
    click.echo(f"User      {results.user_rhythm}")


@main.command()
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--duration", default=5.0, show_default=True, help="Recording length in seconds")
@click.option("--device", default=None, type=int, help="Audio input device ID")
@click.pass_obj
def record(factory: ComponentFactory, output: str, duration: float, device: Optional[int]):
    """Record from the microphone, print the live pitch and save a WAV file."""
    from ..audio.wav_io import save_wav

    audio_input = factory.create_audio_input("sounddevice", device_id=device)
    service = factory.create_tracking_service(audio_input=audio_input, record=True)
    interval = service.tracking_config.analysis_interval
    calibration = service.noise_gate.config.calibration_duration

    click.echo(f"Stay quiet for {calibration:.1f}s while the noise gate calibrates...")
    if not service.start():
        raise click.ClickException("Could not start audio input")

    try:
        total_points = int(round((calibration + duration) / interval))
        announced = False
        for point in service.iter_points(max_points=total_points):
            if service.noise_gate.is_ready() and not announced:
                click.echo("Speak now.")
                announced = True
            if point.has_pitch():
                click.echo(f"{point.timestamp:6.2f}s  {point.frequency:6.1f}Hz  {get_note_name(point.frequency)}")
    except KeyboardInterrupt:
        click.echo("\nStopped")
    finally:
        service.stop()

    path = save_wav(output, service.recorded_audio(), service.sample_rate)
    click.echo(f"Saved recording to {path}")
    click.echo(str(calculate_statistics(service.series)))


@main.command("calibrate-voice")
@click.argument("wav_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--min-samples", default=50, show_default=True, help="Voiced points required")
@click.pass_obj
def calibrate_voice(factory: ComponentFactory, wav_file: str, min_samples: int):
    """Estimate the speaker's pitch range from a recording."""
    series = _analyze_file(factory, wav_file, 0.1)
    calibrator = VoiceRangeCalibrator(min_samples=min_samples)
    calibrator.add_series(series)
    voice_range = calibrator.analyze()
    if voice_range is None:
        raise click.ClickException(
            f"Not enough voiced audio: {calibrator.sample_count} of {min_samples} samples"
        )
    click.echo(str(voice_range))
    default_low, default_high = voice_range.voice_type.default_range()
    click.echo(f"Typical range for this voice type: {default_low:.0f}-{default_high:.0f}Hz")


@main.group()
def config():
    """Show or reset the stored configuration."""


@config.command("show")
@click.argument("section", required=False)
@click.pass_obj
def config_show(factory: ComponentFactory, section: Optional[str]):
    """Print one configuration section, or all of them."""
    manager = factory.config_manager
    if section is not None and section not in manager.sections:
        raise click.BadParameter(f"Unknown section: {section}", param_hint="SECTION")
    names = [section] if section else manager.sections
    click.echo(json.dumps({name: manager.get_config(name) for name in names}, indent=2))


@config.command("reset")
@click.argument("section")
@click.pass_obj
def config_reset(factory: ComponentFactory, section: str):
    """Restore the defaults of one configuration section."""
    if not factory.config_manager.reset_config(section):
        raise click.ClickException(f"Could not reset configuration section: {section}")
    click.echo(f"Reset {section} to defaults")


def run() -> None:
    """Console entry point that reports configuration errors without a traceback."""
    try:
        main()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)


if __name__ == "__main__":
    run()
