"""CLI for offline CTC transcription."""

import argparse
import logging
import sys
from pathlib import Path

from ctc_asr.audio import AcousticConfig, AudioCollector, SpectralFrontend, load_wav, resample_linear
from ctc_asr.audio.config import TARGET_SAMPLE_RATE
from ctc_asr.errors import TranscriptionError
from ctc_asr.models.registry import list_all
from ctc_asr.pipeline import SpeechService
from ctc_asr.runtime import RuntimeOptions
from ctc_asr.settings import load_settings

logger = logging.getLogger("ctc_asr.cli")


def _load_audio(path: Path):
    samples, sr = load_wav(path)
    if sr != TARGET_SAMPLE_RATE:
        logger.info("Resampling %s from %d Hz to %d Hz", path, sr, TARGET_SAMPLE_RATE)
        samples = resample_linear(samples, sr, TARGET_SAMPLE_RATE)
    return samples


def _cmd_transcribe(args: argparse.Namespace) -> int:
    service = SpeechService(
        args.models_root,
        runtime_options=RuntimeOptions.from_ids(args.profile, args.accelerator),
    )
    if args.warmup:
        service.warmup(args.model)

    if args.file is not None:
        samples = _load_audio(args.file)
    else:
        collector = AudioCollector(TARGET_SAMPLE_RATE)
        print(f"Recording {args.duration}s (mono {TARGET_SAMPLE_RATE} Hz)...")
        samples = collector.record_chunk(args.duration, args.device)

    report = service.transcribe_samples(args.model, samples)
    print(report.text)
    if args.show_profile:
        print(service.last_profiling_summary())
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    service = SpeechService(args.models_root)
    model_dir = service.model_directory(args.model)
    if service.is_model_valid(args.model):
        print(f"ok: {args.model} ({model_dir})")
        return 0
    print(f"missing or incomplete: {args.model} ({model_dir})", file=sys.stderr)
    return 1


def _cmd_features(args: argparse.Namespace) -> int:
    config = AcousticConfig.from_file(args.config) if args.config else AcousticConfig()
    frontend = SpectralFrontend(config)
    features, frames = frontend.extract_features(_load_audio(args.file))
    print(f"Extracted {frames} frames x {config.n_mels} Mel bins, tensor shape {features.shape}")
    if frames > 0:
        print(f"Sample frame (first 5 bins): {features[0, :5, 0]}")
    return 0


def _cmd_models(args: argparse.Namespace) -> int:
    for spec in list_all():
        print(f"{spec.model_id}\t{spec.display_name} ({spec.quality_hint})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = load_settings()

    parser = argparse.ArgumentParser(prog="ctc-asr", description="Offline CTC speech recognition (mono 16 kHz)")
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def add_model_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--models-root",
            type=Path,
            default=settings.models_root,
            help=f"Directory holding model subdirectories (default: {settings.models_root})",
        )
        p.add_argument(
            "--model",
            default=settings.model_id,
            help=f"Model id (default: {settings.model_id})",
        )

    p = sub.add_parser("transcribe", help="Transcribe a WAV file or a microphone recording")
    add_model_args(p)
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="WAV file to transcribe")
    source.add_argument("--duration", type=float, help="Record from the microphone for N seconds")
    p.add_argument("--device", type=int, default=None, help="Input device index")
    p.add_argument(
        "--profile",
        default=settings.speed_profile,
        help="Speed profile: balanced, fast, quality",
    )
    p.add_argument(
        "--accelerator",
        default=settings.accelerator,
        help="Accelerator mode: auto, cpu",
    )
    p.add_argument("--warmup", action="store_true", help="Run a warmup pass before transcribing")
    p.add_argument("--show-profile", action="store_true", help="Print the profiling summary as JSON")
    p.set_defaults(func=_cmd_transcribe)

    p = sub.add_parser("validate", help="Check that a model's files are present")
    add_model_args(p)
    p.set_defaults(func=_cmd_validate)

    p = sub.add_parser("features", help="Extract log-Mel features from a WAV file")
    p.add_argument("--file", type=Path, required=True, help="WAV file")
    p.add_argument("--config", type=Path, default=None, help="Model config (default: built-in)")
    p.set_defaults(func=_cmd_features)

    p = sub.add_parser("models", help="List known model ids")
    p.set_defaults(func=_cmd_models)

    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        code = args.func(args)
    except TranscriptionError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
