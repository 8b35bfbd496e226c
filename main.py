#!/usr/bin/env python3
"""
HLS Ladder Converter
Command-line entry point: converts source videos into adaptive HLS packages.
"""

import argparse
import json
import logging
import sys
from concurrent.futures import as_completed
from pathlib import Path
from typing import List, Optional

from hls_pipeline.config_manager import ConfigManager, ConfigurationError
from hls_pipeline.errors import ConversionError
from hls_pipeline.job_queue import JobQueue
from hls_pipeline.stats_tracker import LoggingObserver, StatsTracker
from hls_pipeline.stop_flag import StopFlag
from hls_pipeline.video_converter import VideoConverter


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert videos into adaptive-bitrate HLS packages.")
    parser.add_argument("inputs", nargs="+", help="Source video files")
    parser.add_argument("--config", help="Path to a JSON configuration file")
    parser.add_argument("--output-dir", help="Root directory for job outputs (overrides config)")
    parser.add_argument("--job-id", help="Job id to use (only with a single input)")
    parser.add_argument("--jobs", type=int, help="Maximum concurrent jobs (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)
    if args.job_id and len(args.inputs) > 1:
        parser.error("--job-id can only be used with a single input")
    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the HLS converter."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='[%(asctime)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info("HLS Ladder Converter - Starting")
    logger.info("=" * 60)

    try:
        config = ConfigManager(args.config) if args.config else ConfigManager.defaults()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    output_root = Path(args.output_dir) if args.output_dir else config.output_directory
    logger.info(f"  - Output directory: {output_root}")
    logger.info(f"  - Source deletion: {'enabled' if config.delete_source else 'disabled'}")

    stats = StatsTracker()
    stop_flag = StopFlag.get_instance()
    stop_flag.register_signal_handlers()
    converter = VideoConverter(config, observers=[LoggingObserver(), stats])

    failed = 0
    with JobQueue(converter, args.jobs, stop_flag=stop_flag) as queue:
        futures = {
            queue.submit(input_path, output_root, job_id=args.job_id): input_path
            for input_path in args.inputs
        }
        for future in as_completed(futures):
            input_path = futures[future]
            try:
                summary = future.result()
            except ConversionError as e:
                failed += 1
                logger.error(f"Conversion failed for {input_path}: {e}")
                print(json.dumps({"input": input_path, "success": False, "jobId": e.job_id}))
                continue
            print(json.dumps(dict(summary.to_dict(), input=input_path)))

    stats.print_summary()
    logger.info("=" * 60)
    logger.info("HLS Ladder Converter - Completed")
    logger.info("=" * 60)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
