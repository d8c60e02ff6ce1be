"""Shows the ground truth matches (GTM) of all image pairs in a folder.

Example:
    python gtmviz/runner/run_gtm_viewer.py --img_path data/images --l_img_pref left/*.png --r_img_pref right/*.png \
        --gtm_path data/gtm --gtm_postfix inlRat950FAST.gtm

Exit status: 0 if all GTM files were shown, 1 on a fatal error (missing or mismatched sequences, malformed GTM), 2 if
some GTM files could not be read.
"""

import argparse
import logging
import sys
from typing import List, Optional

import hydra
from hydra.utils import instantiate
from omegaconf import OmegaConf

import gtmviz.loader.sequence_loader as sequence_loader
import gtmviz.utils.logger as logger_utils
from gtmviz.common.gtm_record import MalformedGtmError
from gtmviz.gtm_viewer import STATUS_OK, GtmViewer, SequenceMismatchError

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_GTM_READ_ERROR = 2

logger = logger_utils.get_logger()


class GtmViewerRunner:
    tag = "Ground truth matches viewer"

    def __init__(self, override_args: Optional[List[str]] = None) -> None:
        argparser: argparse.ArgumentParser = self.construct_argparser()
        self.parsed_args: argparse.Namespace = argparser.parse_args(args=override_args)

        # Configure the logging system
        log_level = getattr(logging, self.parsed_args.log.upper(), None)
        if log_level is not None:
            logger.setLevel(log_level)

    def construct_argparser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description=self.tag)

        parser.add_argument("--img_path", type=str, required=True, help="Path to the images.")
        parser.add_argument(
            "--l_img_pref",
            type=str,
            default="",
            help="Pattern `[folder/][prefix][*][postfix]` of the left/first images, relative to img_path, e.g."
            " `left/img_*.png`. Selects all images of img_path if empty.",
        )
        parser.add_argument(
            "--r_img_pref",
            type=str,
            default="",
            help="Pattern of the right/second images. Leave empty for consecutive (non-stereo) images.",
        )
        parser.add_argument("--gtm_path", type=str, required=True, help="Path to the GTM files.")
        parser.add_argument(
            "--gtm_postfix",
            type=str,
            required=True,
            help="Postfix of the GTM files, including inlier ratio and keypoint type, e.g. `inlRat950FAST.gtm`"
            " or `folder/*inlRat950FAST.gtm`.",
        )
        parser.add_argument(
            "--config_name",
            type=str,
            default="default",
            help="Master config (choose from among gtmviz/configs).",
        )
        parser.add_argument(
            "--verifier_config_name",
            type=str,
            default=None,
            help="Override flag for verifier (choose from among gtmviz/configs/verifier).",
        )
        parser.add_argument(
            "--max_matches",
            type=int,
            default=None,
            help="Maximum number of matches to display per pair. Defaults to the number of true positives of each"
            " GTM file.",
        )
        parser.add_argument(
            "--max_display_size",
            type=int,
            default=None,
            help="Maximum length (in pixels) of the longest edge of the displayed overlay.",
        )
        parser.add_argument(
            "--save_dir",
            type=str,
            default=None,
            help="Write overlays as PNG files to this directory instead of showing them in a window.",
        )
        parser.add_argument(
            "--dump_dir",
            type=str,
            default=None,
            help="Write the coordinates of the displayed matches of each pair as text files to this directory.",
        )
        parser.add_argument(
            "--report_path", type=str, default=None, help="Write a JSON report of all pairs to this file."
        )
        parser.add_argument(
            "-l",
            "--log",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            default="INFO",
            help="Set the logging level",
        )
        return parser

    def build_overrides(self) -> List[str]:
        """Translates command line arguments into Hydra overrides of the master config."""
        args = self.parsed_args
        overrides: List[str] = []

        if args.verifier_config_name is not None:
            overrides.append(f"verifier@GtmViewer.verifier={args.verifier_config_name}")
        if args.save_dir is not None:
            overrides.append("display@GtmViewer.display=file")
            overrides.append(f"GtmViewer.display.save_dir='{args.save_dir}'")
        if args.max_matches is not None:
            overrides.append(f"GtmViewer.max_matches={args.max_matches}")
        if args.max_display_size is not None:
            overrides.append(f"GtmViewer.renderer.max_display_size={args.max_display_size}")
        if args.dump_dir is not None:
            overrides.append(f"GtmViewer.correspondences_dump_dir='{args.dump_dir}'")
        if args.report_path is not None:
            overrides.append(f"GtmViewer.report_fpath='{args.report_path}'")

        return overrides

    def construct_viewer(self) -> GtmViewer:
        """Construct the viewer from the master config. All configs are relative to the gtmviz module."""
        with hydra.initialize_config_module(config_module="gtmviz.configs", version_base=None):
            main_cfg = hydra.compose(config_name=self.parsed_args.config_name, overrides=self.build_overrides())
            logger.debug("Viewer config:\n" + OmegaConf.to_yaml(main_cfg))
            viewer: GtmViewer = instantiate(main_cfg.GtmViewer)

        return viewer

    def run(self) -> int:
        """Loads the image and GTM sequences and shows all pairs.

        Returns:
            Process exit status.
        """
        args = self.parsed_args
        try:
            image_fnames_left, image_fnames_right = sequence_loader.load_image_stereo_sequence(
                args.img_path, args.l_img_pref, args.r_img_pref
            )
        except sequence_loader.SequenceLoadError as e:
            logger.error("Could not find images! Exiting. %s", e)
            return EXIT_FATAL

        try:
            gtm_fnames = sequence_loader.load_gtm_sequence(args.gtm_path, args.gtm_postfix)
        except sequence_loader.SequenceLoadError as e:
            logger.error("Could not find GTM files! Exiting. %s", e)
            return EXIT_FATAL

        inlier_ratio, keypoint_type = sequence_loader.parse_gtm_postfix(args.gtm_postfix)
        logger.info(
            "Found %d image pairs and %d GTM files (inlier ratio: %s, keypoint type: %s).",
            len(image_fnames_left),
            len(gtm_fnames),
            inlier_ratio,
            keypoint_type,
        )

        viewer = self.construct_viewer()
        try:
            status = viewer.run(image_fnames_left, image_fnames_right, gtm_fnames)
        except (SequenceMismatchError, MalformedGtmError) as e:
            logger.error("Exiting: %s", e)
            return EXIT_FATAL

        return EXIT_OK if status == STATUS_OK else EXIT_GTM_READ_ERROR


def main(override_args: Optional[List[str]] = None) -> int:
    runner = GtmViewerRunner(override_args)
    return runner.run()


if __name__ == "__main__":
    sys.exit(main())
