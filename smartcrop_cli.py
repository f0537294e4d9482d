# -*- coding: utf-8 -*-
import os
import sys
import json
import time
import logging
import argparse
import concurrent.futures
from typing import Tuple, List, Dict, Any, Optional

import tqdm

from smartcrop import (
    Config,
    SmartCropError,
    SmartCropOptions,
    ValidationError,
    analyze,
    crop_raster,
    crop_region,
    encode_image,
    load_config_from_file,
    load_image_file,
    setup_logging,
    __version__,
)
from smartcrop.codec import SUPPORTED_EXTENSIONS, SUPPORTED_OUTPUT_FORMATS

logger = logging.getLogger("smartcrop.cli")

OUTPUT_SUFFIX_SMART: str = '_smart'
OUTPUT_SUFFIX_REGION: str = '_region'
CLI_CONFIG_KEYS: Tuple[str, ...] = ('ratio', 'width', 'height', 'boost', 'output_dir', 'output_format',
                                    'quality', 'overwrite', 'dry_run', 'workers')
TQDM_BAR_FORMAT: str = '{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}{postfix}]'


class CropSetupError(Exception):
    """Critical errors while preparing a batch run (bad input path, output dir, config)."""
    pass


def parse_boost_arg(text: str) -> Dict[str, float]:
    """'x,y,width,height[,weight]' -> boost mapping."""
    parts = [p.strip() for p in str(text).split(',')]
    if len(parts) not in (4, 5):
        raise argparse.ArgumentTypeError(f"boost must be 'x,y,width,height[,weight]', got '{text}'")
    try:
        numbers = [float(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"boost values must be numeric, got '{text}'")
    boost = dict(zip(('x', 'y', 'width', 'height'), numbers[:4]))
    boost['weight'] = numbers[4] if len(parts) == 5 else 1.0
    return boost


def create_output_directory(output_dir: str, dry_run: bool) -> bool:
    abs_output_dir = os.path.abspath(output_dir)
    if dry_run:
        logger.info(f"  -> Info: [DRY RUN] Skipping output directory check/creation: {abs_output_dir}")
        return True
    if not os.path.exists(abs_output_dir):
        try:
            os.makedirs(abs_output_dir)
            logger.info(f"  -> Info: Created output directory: {abs_output_dir}")
            return True
        except OSError as e:
            logger.critical(f"  -> Critical: Failed to create output directory '{abs_output_dir}': {e}")
            return False
    elif not os.path.isdir(abs_output_dir):
        logger.critical(f"  -> Critical: The specified output path '{abs_output_dir}' is not a directory.")
        return False
    return True


def collect_image_files(input_path: str) -> Tuple[List[str], List[str]]:
    """Supported image files under input_path (a file or a directory) and the skipped items."""
    if os.path.isfile(input_path):
        if input_path.lower().endswith(SUPPORTED_EXTENSIONS):
            return [input_path], []
        return [], [f"{os.path.basename(input_path)} (Unsupported extension)"]
    if not os.path.isdir(input_path):
        raise CropSetupError(f"Input path not found: {os.path.abspath(input_path)}")

    image_files: List[str] = []
    skipped: List[str] = []
    try:
        items = sorted(os.listdir(input_path))
    except OSError as e:
        raise CropSetupError(f"Cannot access input directory '{os.path.abspath(input_path)}': {e}")
    for item_name in items:
        item_path = os.path.join(input_path, item_name)
        if os.path.isfile(item_path):
            if item_name.lower().endswith(SUPPORTED_EXTENSIONS):
                image_files.append(item_path)
            else:
                skipped.append(f"{item_name} (Unsupported extension)")
        elif os.path.isdir(item_path):
            skipped.append(f"{item_name} (Directory)")
        else:
            skipped.append(f"{item_name} (Not a file or directory)")
    return image_files, skipped


def build_options(settings: argparse.Namespace) -> SmartCropOptions:
    return SmartCropOptions.from_mapping({
        'aspect_ratio': settings.ratio,
        'width': settings.width,
        'height': settings.height,
        'boost': settings.boost or [],
    })


def _determine_output_filename(base_filename: str, suffix: str, settings: argparse.Namespace) -> str:
    ratio_str = f"_r{settings.ratio.replace(':', '-')}" if settings.ratio else ""
    output_format = (settings.output_format or 'png').lower().lstrip('.')
    return f"{base_filename}{suffix}{ratio_str}.{output_format}"


def process_image(image_path: str, settings: argparse.Namespace) -> Dict[str, Any]:
    filename = os.path.basename(image_path)
    base_filename = os.path.splitext(filename)[0]
    start_time = time.time()
    status: Dict[str, Any] = {'filename': filename, 'path': image_path, 'success': False, 'saved': False,
                              'skipped_overwrite': False, 'message': '', 'window': None}
    try:
        raster = load_image_file(image_path)
        if settings.command == 'analyze':
            window = analyze(raster, settings.options, settings.engine_config)
            status['window'] = window.to_dict()
            status['success'] = True
            status['message'] = f"Analyzed ({time.time() - start_time:.2f}s)."
            return status

        if settings.command == 'extract':
            out_filename = _determine_output_filename(base_filename, OUTPUT_SUFFIX_REGION, settings)
        else:
            out_filename = _determine_output_filename(base_filename, OUTPUT_SUFFIX_SMART, settings)
        out_path = os.path.join(settings.output_dir, out_filename)
        if not settings.overwrite and os.path.exists(out_path) and not settings.dry_run:
            status['skipped_overwrite'] = True
            status['message'] = f"Skipped (file '{out_filename}' exists, overwrite disabled)."
            return status

        if settings.command == 'extract':
            encoded = crop_region(raster, settings.x, settings.y, settings.region_width, settings.region_height,
                                  settings.output_format, settings.quality)
            window_info = {'x': settings.x, 'y': settings.y,
                           'width': settings.region_width, 'height': settings.region_height}
        else:
            result = crop_raster(raster, settings.options, settings.engine_config)
            encoded = encode_image(result.raster, settings.output_format, settings.quality)
            window_info = result.window.to_dict()

        status['window'] = window_info
        if not settings.dry_run:
            with open(out_path, 'wb') as f:
                f.write(encoded)
        status['success'] = True
        status['saved'] = True
        action = "simulated" if settings.dry_run else "saved"
        status['message'] = f"Cropped and {action} '{out_filename}' ({time.time() - start_time:.2f}s)."
    except SmartCropError as e:
        status['message'] = f"{type(e).__name__}: {e}"
    except OSError as e:
        status['message'] = f"File write error: {e}"
    return status


def process_image_wrapper(args_tuple: Tuple[str, argparse.Namespace]) -> Dict[str, Any]:
    image_path, settings = args_tuple
    setup_logging(logging.DEBUG if settings.verbose else logging.INFO)
    try:
        return process_image(image_path, settings)
    except Exception as e:
        logger.error(f"  -> Error: {os.path.basename(image_path)}: Critical error in worker: {e}", exc_info=True)
        return {'filename': os.path.basename(image_path), 'path': image_path, 'success': False, 'saved': False,
                'skipped_overwrite': False, 'message': f"Critical error in worker: {e}", 'window': None}


def _report(result: Dict[str, Any], settings: argparse.Namespace) -> bool:
    """Logs/prints one result. Returns True when it counts as an error."""
    if settings.command == 'analyze' and result.get('success'):
        print(json.dumps({'file': result['filename'], **result['window']}, ensure_ascii=True))
        return False
    if result.get('success'):
        logger.info(f"  -> Success: {result['filename']}: {result['message']}")
        return False
    if result.get('skipped_overwrite'):
        logger.info(f"  -> Info: {result['filename']}: {result['message']}")
        return False
    logger.warning(f"  -> Warning: {result['filename']}: {result['message']}")
    return True


def execute_operation(settings: argparse.Namespace) -> int:
    """Runs analyze/crop/extract over a file or directory. Returns the number of failed images."""
    setup_logging(logging.DEBUG if settings.verbose else logging.INFO)
    logger.info(f"===== Smart Crop '{settings.command}' Started =====")
    if settings.dry_run:
        logger.info("***** Running in Dry Run mode. No files will be saved. *****")

    if settings.command != 'analyze' and not create_output_directory(settings.output_dir, settings.dry_run):
        raise CropSetupError(f"Could not prepare output directory '{settings.output_dir}'.")

    image_files, skipped_scan_items = collect_image_files(settings.input_path)
    for item in skipped_scan_items[:10]:
        logger.info(f"  -> Info: Skipped during scan: {item}")
    if not image_files:
        logger.info(f"  -> Info: No supported image files ({', '.join(SUPPORTED_EXTENSIONS)}) found in '{os.path.abspath(settings.input_path)}'.")
        logger.info(f"===== Smart Crop '{settings.command}' Finished =====")
        return 0

    available_cpus = os.cpu_count() or 1
    workers = settings.workers if settings.workers and settings.workers > 0 else available_cpus
    actual_workers = max(1, min(workers, len(image_files)))
    tasks = [(img_path, settings) for img_path in image_files]
    tqdm_extra_kwargs: Dict[str, Any] = {'disable': len(tasks) == 1}
    if not settings.verbose:
        tqdm_extra_kwargs['bar_format'] = TQDM_BAR_FORMAT
        tqdm_extra_kwargs['ncols'] = 80

    total_start_time = time.time()
    results_list: List[Dict[str, Any]] = []
    if actual_workers > 1:
        with concurrent.futures.ProcessPoolExecutor(max_workers=actual_workers) as executor:
            future_results = executor.map(process_image_wrapper, tasks)
            for result in tqdm.tqdm(future_results, total=len(tasks), desc="Processing images", unit="file",
                                    file=sys.stderr, **tqdm_extra_kwargs):
                results_list.append(result)
    else:
        for task in tqdm.tqdm(tasks, desc="Processing images sequentially", unit="file",
                              file=sys.stderr, **tqdm_extra_kwargs):
            results_list.append(process_image_wrapper(task))

    images_with_errors_count = sum(1 for result in results_list if _report(result, settings))
    logger.info(f"  -> Info: {len(results_list) - images_with_errors_count}/{len(results_list)} image(s) succeeded "
                f"in {time.time() - total_start_time:.2f} seconds.")
    logger.info(f"===== Smart Crop '{settings.command}' Finished =====")
    return images_with_errors_count


def load_and_merge_settings(args: argparse.Namespace, parser: argparse.ArgumentParser) -> argparse.Namespace:
    """Defaults <- JSON config file <- explicitly given command-line flags."""
    settings = argparse.Namespace(**{k: v for k, v in vars(args).items() if k != 'parser_ref'})
    engine_values: Dict[str, Any] = {}
    if args.config:
        config_data = load_config_from_file(args.config)
        engine_values = config_data.pop('engine', {}) or {}
        if not isinstance(engine_values, dict):
            raise ValidationError(f"'engine' section of '{args.config}' must be a JSON object")
        for key, value in config_data.items():
            if key not in CLI_CONFIG_KEYS:
                logger.warning(f"  -> Warning: Unknown key '{key}' in configuration file '{args.config}' ignored.")
                continue
            if key == 'boost':
                value = [parse_boost_arg(v) if isinstance(v, str) else v for v in value]
            if hasattr(settings, key) and getattr(args, key) == parser.get_default(key):
                setattr(settings, key, value)
    settings.engine_config = Config.from_mapping(engine_values)
    if settings.command != 'extract':
        settings.options = build_options(settings)
    return settings


def _add_common_arguments(sub_parser: argparse.ArgumentParser, with_output: bool):
    sub_parser.add_argument("input_path", nargs='?', default="input",
                            help="Path to the image file or directory to process (Default: 'input').")
    sub_parser.add_argument("--config", help="Path to a JSON configuration file ('engine' section tunes scoring).")
    sub_parser.add_argument("--workers", type=int, default=0, help="Worker processes for directories (Default: CPU count).")
    sub_parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Enable detailed (DEBUG level) logging.")
    if with_output:
        sub_parser.add_argument("-o", "--output-dir", dest='output_dir', default="output",
                                help="Directory to save results (Default: 'output').")
        sub_parser.add_argument("-f", "--output-format", dest='output_format', default='png',
                                choices=sorted(SUPPORTED_OUTPUT_FORMATS.keys()),
                                help="Output image format (Default: png, lossless).")
        sub_parser.add_argument("-q", "--quality", type=int, choices=range(1, 101), metavar="[1-100]", default=95,
                                help="JPEG/WebP quality (Default: 95).")
        sub_parser.add_argument("--overwrite", action="store_true", default=False, help="Overwrite existing output files.")
        sub_parser.add_argument("--dry-run", action="store_true", default=False, help="Simulate processing without saving files.")


def _add_window_arguments(sub_parser: argparse.ArgumentParser):
    group = sub_parser.add_argument_group('Crop Window Options')
    group.add_argument("-r", "--ratio", type=str, default=None, help="Target aspect ratio, e.g. '16:9' or '1:1'.")
    group.add_argument("-w", "--width", type=int, default=None, help="Explicit crop width in pixels.")
    group.add_argument("-H", "--height", type=int, default=None, help="Explicit crop height in pixels.")
    group.add_argument("--boost", type=parse_boost_arg, action='append', default=None, metavar="X,Y,W,H[,WEIGHT]",
                       help="Region of interest to favour (repeatable). Weight in [0, 1], default 1.")


def setup_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Smart Crop CLI - content-aware cropping with saliency detection and the rule of thirds.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    subparsers = parser.add_subparsers(title="Commands", dest="command", required=True, help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", help="Print the best crop window as JSON.")
    analyze_parser.set_defaults(parser_ref=analyze_parser)
    _add_common_arguments(analyze_parser, with_output=False)
    _add_window_arguments(analyze_parser)
    analyze_parser.set_defaults(output_dir=None, output_format='png', quality=95, overwrite=False, dry_run=False)

    crop_parser = subparsers.add_parser("crop", help="Crop images to their best window.")
    crop_parser.set_defaults(parser_ref=crop_parser)
    _add_common_arguments(crop_parser, with_output=True)
    _add_window_arguments(crop_parser)

    extract_parser = subparsers.add_parser("extract", help="Crop images by explicit coordinates.")
    extract_parser.set_defaults(parser_ref=extract_parser)
    _add_common_arguments(extract_parser, with_output=True)
    extract_parser.add_argument("--x", type=int, required=True, help="Left edge in pixels.")
    extract_parser.add_argument("--y", type=int, required=True, help="Top edge in pixels.")
    extract_parser.add_argument("--width", dest='region_width', type=int, required=True, help="Region width in pixels.")
    extract_parser.add_argument("--height", dest='region_height', type=int, required=True, help="Region height in pixels.")
    extract_parser.set_defaults(ratio=None, width=None, height=None, boost=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = setup_arg_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_and_merge_settings(args, args.parser_ref)
        error_count = execute_operation(settings)
    except (CropSetupError, SmartCropError) as e:
        print(f"(!) Critical Setup Error: {e}", file=sys.stderr)
        return 2
    if error_count > 0:
        print(f"Operation completed with {error_count} image(s) having errors. Check logs.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
