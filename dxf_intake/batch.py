"""
Batch analysis of DXF files.

Provides:
- Folder-based batch analysis (DXF -> Metrics, optional report files)
- Progress tracking and reporting
- Parallel processing support
- Error handling and logging

Runs share nothing, so files are analysed independently on a thread pool
when parallel=True.

Usage:
    from dxf_intake.batch import batch_analyze

    results = batch_analyze(
        input_dir="./designs",
        output_dir="./reports",
        parallel=True,
    )
    print(results.summary())
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from dxf_intake.io.dxf_export import export_clean_dxf
from dxf_intake.io.dxf_reader import read_dxf_file
from dxf_intake.logging_config import LogContext
from dxf_intake.metrics import Metrics
from dxf_intake.pipeline import parse
from dxf_intake.project_config import ProjectConfig, load_config
from dxf_intake.report import save_report

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "dxf")


@dataclass
class AnalysisResult:
    """Result of a single file analysis."""
    input_path: Path
    metrics: Optional[Metrics] = None
    output_paths: List[Path] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def status(self) -> str:
        return "OK" if self.success else "FAILED"

    def to_dict(self) -> Dict:
        m = self.metrics
        return {
            'input': str(self.input_path),
            'outputs': [str(p) for p in self.output_paths],
            'success': self.success,
            'error': self.error,
            'duration': self.duration_seconds,
            'total_parsed': m.total_parsed if m else 0,
            'total_vectors': m.total_vectors if m else 0,
            'total_length': m.total_length if m else 0.0,
        }


@dataclass
class BatchResult:
    """Result of batch analysis."""
    results: List[AnalysisResult] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total == 0:
            return 0.0
        return 100.0 * self.successful / self.total

    @property
    def total_length(self) -> float:
        """Cut length summed over all successfully analysed files."""
        return sum(r.metrics.total_length for r in self.results if r.success and r.metrics)

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Batch Analysis Summary",
            "=" * 40,
            f"Total files:     {self.total}",
            f"Successful:      {self.successful}",
            f"Failed:          {self.failed}",
            f"Success rate:    {self.success_rate:.1f}%",
            f"Total cut:       {self.total_length:.1f} mm",
            f"Total time:      {self.total_duration_seconds:.1f}s",
            "",
        ]

        if self.failed > 0:
            lines.append("Failed files:")
            for r in self.results:
                if not r.success:
                    lines.append(f"  - {r.input_path.name}: {r.error}")

        return "\n".join(lines)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total': self.total,
            'successful': self.successful,
            'failed': self.failed,
            'success_rate': self.success_rate,
            'total_length': self.total_length,
            'total_duration_seconds': self.total_duration_seconds,
            'results': [r.to_dict() for r in self.results],
        }


def find_dxf_files(
    input_dir: Union[str, Path],
    pattern: str = "*.dxf",
    recursive: bool = False,
) -> List[Path]:
    """Find DXF files in directory (either extension case).

    Raises:
        FileNotFoundError: if the directory does not exist
        NotADirectoryError: if the path is not a directory
    """
    input_dir = Path(input_dir)

    if not input_dir.exists():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")

    if not input_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {input_dir}")

    glob = input_dir.rglob if recursive else input_dir.glob
    files = list(glob(pattern))
    files.extend(glob(pattern.replace('.dxf', '.DXF')))

    files = sorted(set(files))

    logger.info("Found %d DXF files in %s", len(files), input_dir)
    return files


def analyze_single_file(
    input_path: Path,
    output_dir: Optional[Path] = None,
    config: Optional[ProjectConfig] = None,
    sheet_width: Optional[float] = None,
    sheet_height: Optional[float] = None,
) -> AnalysisResult:
    """Analyse a single DXF file and write the configured outputs.

    Outputs (config.output.formats) are written only when output_dir is set:
    "json" writes the analysis report, "dxf" writes the clean geometry.

    Args:
        input_path: Path to DXF file
        output_dir: Directory for report files (None = no files written)
        config: Project configuration
        sheet_width: Optional material sheet width
        sheet_height: Optional material sheet height

    Returns:
        AnalysisResult with status and metrics
    """
    start_time = time.perf_counter()
    config = config or ProjectConfig()
    result = AnalysisResult(input_path=input_path)

    with LogContext(file=input_path.name):
        try:
            text = read_dxf_file(
                input_path,
                max_size_mb=config.input.max_file_size_mb,
                encoding=config.input.encoding,
            )
            metrics = parse(text, sheet_width, sheet_height, config)
            result.metrics = metrics

            if output_dir is not None:
                output_dir.mkdir(parents=True, exist_ok=True)
                stem = f"{config.output.prefix}{input_path.stem}{config.output.suffix}"
                for fmt in config.output.formats:
                    if fmt == "json":
                        path = output_dir / f"{stem}.json"
                        save_report(metrics, path, source=input_path.name)
                    elif fmt == "dxf":
                        path = output_dir / f"{stem}.clean.dxf"
                        export_clean_dxf(metrics.valid_entities, path)
                    else:
                        logger.warning("Unknown output format %r ignored", fmt)
                        continue
                    result.output_paths.append(path)

            result.success = True

        except Exception as e:
            result.success = False
            result.error = str(e)
            logger.error("Failed to analyse %s: %s", input_path.name, e)

    result.duration_seconds = time.perf_counter() - start_time
    return result


def _log_progress(i: int, total: int, result: AnalysisResult) -> None:
    logger.info(
        "[%d/%d] %s: %s (%.2fs)",
        i, total, result.input_path.name, result.status, result.duration_seconds
    )


def batch_analyze(
    input_dir: Union[str, Path],
    output_dir: Optional[Union[str, Path]] = None,
    pattern: str = "*.dxf",
    recursive: bool = False,
    config: Optional[ProjectConfig] = None,
    config_path: Optional[Union[str, Path]] = None,
    parallel: bool = False,
    max_workers: Optional[int] = None,
    sheet_width: Optional[float] = None,
    sheet_height: Optional[float] = None,
    progress_callback: Optional[Callable[[int, int, AnalysisResult], None]] = None,
) -> BatchResult:
    """Batch analyse DXF files.

    Args:
        input_dir: Directory containing DXF files
        output_dir: Directory for report files (default: config.output.output_dir,
            no files when both are empty)
        pattern: Glob pattern for DXF files
        recursive: Search subdirectories
        config: Project configuration
        config_path: Path to .dxfintake.json config file
        parallel: Use a thread pool
        max_workers: Maximum parallel workers (None = executor default)
        sheet_width: Optional material sheet width for every file
        sheet_height: Optional material sheet height for every file
        progress_callback: Called after each file: (current, total, result)

    Returns:
        BatchResult with analysis statistics, ordered by file name
    """
    start_time = time.perf_counter()
    input_dir = Path(input_dir)

    if config is None and config_path:
        config = load_config(explicit_config=config_path)
    elif config is None:
        config = load_config(dxf_path=input_dir / "any.dxf")

    if output_dir is None and config.output.output_dir:
        output_dir = config.output.output_dir
    out = Path(output_dir) if output_dir else None

    dxf_files = find_dxf_files(input_dir, pattern, recursive)

    if not dxf_files:
        logger.warning("No DXF files found in %s", input_dir)
        return BatchResult(total_duration_seconds=time.perf_counter() - start_time)

    logger.info("Starting batch analysis: %d files, parallel=%s", len(dxf_files), parallel)

    results: List[AnalysisResult] = []
    total = len(dxf_files)

    if parallel:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(analyze_single_file, f, out, config, sheet_width, sheet_height)
                for f in dxf_files
            ]
            for i, future in enumerate(as_completed(futures), 1):
                result = future.result()
                results.append(result)
                if progress_callback:
                    progress_callback(i, total, result)
                _log_progress(i, total, result)
        results.sort(key=lambda r: r.input_path)
    else:
        for i, dxf_file in enumerate(dxf_files, 1):
            result = analyze_single_file(dxf_file, out, config, sheet_width, sheet_height)
            results.append(result)
            if progress_callback:
                progress_callback(i, total, result)
            _log_progress(i, total, result)

    batch_result = BatchResult(
        results=results,
        total_duration_seconds=time.perf_counter() - start_time,
    )

    logger.info(
        "Batch analysis complete: %d/%d successful (%.1f%%) in %.1fs",
        batch_result.successful, batch_result.total,
        batch_result.success_rate, batch_result.total_duration_seconds
    )

    return batch_result


def batch_analyze_cli(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for batch analysis."""
    import argparse

    from dxf_intake.logging_config import configure_default_logging

    parser = argparse.ArgumentParser(
        description="Batch analyse DXF files for laser cutting"
    )
    parser.add_argument("input_dir", help="Directory containing DXF files")
    parser.add_argument("-o", "--output", dest="output_dir",
                        help="Directory for report files")
    parser.add_argument("-p", "--pattern", default="*.dxf",
                        help="File pattern (default: *.dxf)")
    parser.add_argument("-r", "--recursive", action="store_true",
                        help="Search subdirectories")
    parser.add_argument("-c", "--config", dest="config_path",
                        help="Path to .dxfintake.json config file")
    parser.add_argument("--parallel", action="store_true",
                        help="Use parallel processing")
    parser.add_argument("-j", "--jobs", type=int, dest="max_workers",
                        help="Maximum parallel jobs")
    parser.add_argument("--sheet-width", type=float, help="Material sheet width")
    parser.add_argument("--sheet-height", type=float, help="Material sheet height")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")

    args = parser.parse_args(argv)
    configure_default_logging(verbose=args.verbose)

    try:
        result = batch_analyze(
            input_dir=args.input_dir,
            output_dir=args.output_dir,
            pattern=args.pattern,
            recursive=args.recursive,
            config_path=args.config_path,
            parallel=args.parallel,
            max_workers=args.max_workers,
            sheet_width=args.sheet_width,
            sheet_height=args.sheet_height,
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        logger.error("Batch analysis failed: %s", e)
        return 1

    print("\n" + result.summary())
    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    import sys
    sys.exit(batch_analyze_cli())
