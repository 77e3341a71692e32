"""
Logging utilities for CropSight
Provides console logging setup and batch progress statistics
"""

import logging
import sys
from typing import Optional, Dict, Any
from datetime import datetime

import colorlog

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class CropStats:
    """Tracks batch crop statistics"""

    def __init__(self):
        """Initialize crop statistics"""
        self.start_time = datetime.now()
        self.total_files = 0
        self.processed_files = 0
        self.cropped_files = 0
        self.failed_files = 0
        self.failure_reasons = {}
        self.errors = []
        self.processing_times = []

    def set_total(self, total: int):
        """Set total number of files to process"""
        self.total_files = total

    def add_result(self, cropped: bool, failure_reason: Optional[str] = None,
                   processing_time: Optional[float] = None):
        """
        Add a crop result

        Args:
            cropped: Whether an output image was produced
            failure_reason: Failure kind if the crop failed
            processing_time: Time taken to process file
        """
        self.processed_files += 1

        if cropped:
            self.cropped_files += 1
        else:
            self.failed_files += 1
            if failure_reason:
                self.failure_reasons[failure_reason] = \
                    self.failure_reasons.get(failure_reason, 0) + 1

        if processing_time:
            self.processing_times.append(processing_time)

    def add_error(self, file_path: str, error: str):
        """Add an error that prevented a file from being processed"""
        self.errors.append({
            'file': file_path,
            'error': error,
            'time': datetime.now()
        })

    def get_elapsed_time(self) -> float:
        """Get elapsed time in seconds"""
        return (datetime.now() - self.start_time).total_seconds()

    def get_average_processing_time(self) -> float:
        """Get average processing time per file"""
        if not self.processing_times:
            return 0.0
        return sum(self.processing_times) / len(self.processing_times)

    def get_summary(self) -> Dict[str, Any]:
        """Get processing summary"""
        elapsed = self.get_elapsed_time()

        return {
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'cropped_files': self.cropped_files,
            'failed_files': self.failed_files,
            'failure_reasons': self.failure_reasons,
            'errors': len(self.errors),
            'elapsed_time': elapsed,
            'average_time_per_file': self.get_average_processing_time(),
        }

    def format_summary(self) -> str:
        """Render the summary as console text"""
        summary = self.get_summary()

        lines = [
            "=" * 60,
            "CROP SUMMARY",
            "=" * 60,
            f"Total files:      {summary['total_files']}",
            f"Cropped:          {summary['cropped_files']}",
            f"Failed:           {summary['failed_files']}",
        ]

        if summary['failure_reasons']:
            lines.append("Failure reasons:")
            for reason, count in sorted(summary['failure_reasons'].items()):
                lines.append(f"  - {reason}: {count}")

        lines.append(f"Errors:           {summary['errors']}")
        lines.append(f"Elapsed time:     {summary['elapsed_time']:.1f}s")
        lines.append(f"Avg time/file:    {summary['average_time_per_file']:.2f}s")
        lines.append("=" * 60)

        for error in self.errors[:10]:  # Show first 10 errors
            lines.append(f"  - {error['file']}: {error['error']}")
        if len(self.errors) > 10:
            lines.append(f"  ... and {len(self.errors) - 10} more errors")

        return "\n".join(lines)


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level name
        color: Whether to use colored output on a terminal
        fmt: Log record format
    """
    console_handler = logging.StreamHandler(sys.stderr)

    if color and sys.stderr.isatty():
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s' + fmt + '%(reset)s',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, '_cropsight_console', False):
            root_logger.removeHandler(handler)
    console_handler._cropsight_console = True

    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(console_handler)
