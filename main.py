"""
CT Project Tools

Main entry point for the command line interface.
"""

from pathlib import Path
from typing import List, Optional
import argparse
import logging
import sys

import numpy as np

from config import DEFAULT_PROJECT, VALID_BINNING_FACTORS
from core.errors import CTProjectError
from exporters.dicom import DICOMExporter
from exporters.project_io import load_ct_project, save_ct_project
from loaders.parameter_loader import expand_angles
from processing.pipeline import create_ct_project
from processing.transforms import correct_cor, subsample_sinogram
from reconstruction import get_backend


def setup_logging():
    """Configure logging to stdout."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def _derived_name(path: str, suffix: str) -> str:
    source = Path(path)
    return str(source.with_name(f"{source.stem}_{suffix}.mat"))


def cmd_create(args: argparse.Namespace) -> None:
    create_ct_project(
        args.project_name,
        args.mode,
        free_ray=args.free_ray,
        cor_fix=args.cor_fix,
        binning=args.binning,
        save=True,
        filename=args.output,
        max_workers=args.workers,
    )


def cmd_correct_cor(args: argparse.Namespace) -> None:
    project = load_ct_project(args.project)
    corrected = correct_cor(project, args.shift)
    save_ct_project(corrected, args.output or _derived_name(args.project, "cor"))


def cmd_subsample(args: argparse.Namespace) -> None:
    project = load_ct_project(args.project)
    if args.angles is not None:
        angles = np.asarray(args.angles, dtype=np.float64)
    else:
        angles = expand_angles(*args.angle_range)
    subsampled = subsample_sinogram(project, angles)
    save_ct_project(
        subsampled, args.output or _derived_name(args.project, "subsampled")
    )


def cmd_reconstruct(args: argparse.Namespace) -> None:
    project = load_ct_project(args.project)
    backend = get_backend(args.backend)
    volume = backend.reconstruct(project, args.dims, args.energy_bin)

    if args.output:
        np.save(args.output, volume.data)
        logging.info(f"Reconstruction saved as {args.output}")
    if args.dicom_dir:
        files = DICOMExporter().export(volume, args.dicom_dir)
        logging.info(f"Wrote {len(files)} DICOM file(s) to {args.dicom_dir}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctproject",
        description="Assemble CT sinograms from raw projections and "
                    "reconstruct them.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser(
        "create", help="Create a CT project from <name>.txt and <name>NNNN.tif"
    )
    create.add_argument("project_name",
                        help="Common prefix of the scan files (may include a directory)")
    create.add_argument("--mode", choices=["2D", "3D", "2d", "3d"], default="3D",
                        help="Reconstruction mode (default: 3D)")
    create.add_argument("--free-ray", type=int, nargs=4,
                        metavar=("ROW1", "ROW2", "COL1", "COL2"),
                        default=list(DEFAULT_PROJECT.free_ray),
                        help="Unattenuated calibration window, 1-based and inclusive")
    create.add_argument("--cor-fix", type=int, default=DEFAULT_PROJECT.cor_fix,
                        help="Center of rotation shift in pixels")
    create.add_argument("--binning", type=int, choices=VALID_BINNING_FACTORS,
                        default=DEFAULT_PROJECT.binning, help="Binning factor")
    create.add_argument("--workers", type=int, default=DEFAULT_PROJECT.max_workers,
                        help="Threads processing projections")
    create.add_argument("--output", "-o", default=None,
                        help="Output .mat file (generated from metadata if omitted)")
    create.set_defaults(func=cmd_create)

    cor = subparsers.add_parser(
        "correct-cor", help="Shift the center of rotation of a saved project"
    )
    cor.add_argument("project", help="CT project .mat file")
    cor.add_argument("shift", type=int, help="Shift in pixels (positive = right)")
    cor.add_argument("--output", "-o", default=None, help="Output .mat file")
    cor.set_defaults(func=cmd_correct_cor)

    subsample = subparsers.add_parser(
        "subsample", help="Keep only the projections at the given angles"
    )
    subsample.add_argument("project", help="CT project .mat file")
    angles = subsample.add_mutually_exclusive_group(required=True)
    angles.add_argument("--angles", type=float, nargs="+",
                        help="Angles to keep, in degrees")
    angles.add_argument("--range", type=float, nargs=3, dest="angle_range",
                        metavar=("FIRST", "STEP", "LAST"),
                        help="Angles first:step:last, in degrees")
    subsample.add_argument("--output", "-o", default=None, help="Output .mat file")
    subsample.set_defaults(func=cmd_subsample)

    recon = subparsers.add_parser(
        "reconstruct", help="FBP (2D) or FDK (3D) reconstruction of a saved project"
    )
    recon.add_argument("project", help="CT project .mat file")
    recon.add_argument("--dims", type=int, nargs="+", required=True,
                       help="Volume size: X Y for 2D, X Y Z for 3D")
    recon.add_argument("--energy-bin", choices=["total", "low", "high"], default=None,
                       help="Sinogram to reconstruct (PCD data only)")
    recon.add_argument("--backend", default="astra", help="Reconstruction backend")
    recon.add_argument("--output", "-o", default=None,
                       help="Write the reconstruction as a .npy file")
    recon.add_argument("--dicom-dir", default=None,
                       help="Write the reconstruction as a DICOM series")
    recon.set_defaults(func=cmd_reconstruct)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()

    try:
        args.func(args)
    except (CTProjectError, ImportError) as e:
        logging.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
