from logging.config import dictConfig
from pathlib import Path
from typing import Optional


def default_output_dir(input_path: Path) -> Path:
    """Name the output directory after the archive, in the working directory.

    ``Xcode_12.xip`` becomes ``Xcode_12``. An archive without an extension
    gets an ``_extracted`` suffix instead, so it can't clash with itself.
    """
    name = input_path.name
    if input_path.suffix:
        name = name[: -len(input_path.suffix)]
    else:
        name += "_extracted"
    return Path.cwd() / name


def output_resolve(input_path: Path, output_dir: Optional[Path]) -> Path:
    if not output_dir:
        return default_output_dir(input_path)
    return output_dir


def configure_debug_logging(verbosity: str = "DEBUG") -> None:
    dictConfig(
        {
            "version": 1,
            "formatters": {
                "detailed": {
                    "format": "[%(asctime)s] %(levelname)-8s - %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S%z",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": "DEBUG",
                    "formatter": "detailed",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "unxip": {
                    "level": verbosity,
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
            "root": {"level": "ERROR", "handlers": ["console"]},
            "disable_existing_loggers": False,
        }
    )


def manifest_path(output_dir: Path, suffix: str) -> Path:
    """Place the manifest beside the output directory, so it can't collide
    with an extracted member."""
    output_dir = output_dir.resolve()
    return output_dir.with_name(output_dir.name + suffix)
