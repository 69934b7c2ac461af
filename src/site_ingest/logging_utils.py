"""
Error Handling and Logging Infrastructure for Site Ingestion

This module provides standardized logging and error handling capabilities
for site ingestion workflows. It includes run tracking, error context
management, and the exception taxonomy shared by every component.
"""

import logging
import sys
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional
from contextlib import contextmanager


LOGGER_NAME = 'site_ingest'


def setup_site_ingest_logging(log_level: str = "INFO",
                              log_file: Optional[str] = None,
                              console_output: bool = True) -> logging.Logger:
    """
    Setup standardized logging for site ingestion.

    Args:
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_file: Optional path to log file
        console_output: Whether to output logs to console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear any existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # File logs capture everything
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class ProcessingLogger:
    """
    Logger for tracking the progress of one ingestion run.

    Keeps counters of extracted sources, records and missing values so a
    run can be summarized once all sources have been processed.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize processing logger.

        Args:
            logger: Logger instance to use. If None, uses the package logger.
        """
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.processing_start_time = None
        self.current_workflow = None
        self.processing_stats = {
            'sites_processed': 0,
            'sources_extracted': 0,
            'records_extracted': 0,
            'missing_values': 0,
            'errors_encountered': 0,
            'warnings_issued': 0
        }

    def log_processing_start(self, workflow_type: str, parameters: Dict[str, Any]) -> None:
        """
        Log start of processing workflow.

        Args:
            workflow_type: Type of workflow being started
            parameters: Processing parameters dictionary
        """
        self.processing_start_time = datetime.now()
        self.current_workflow = workflow_type

        self.logger.info("=" * 60)
        self.logger.info(f"Starting {workflow_type} processing")
        self.logger.info(f"Start time: {self.processing_start_time.isoformat()}")
        self.logger.info("Processing parameters:")

        for param_name, param_value in parameters.items():
            self.logger.info(f"  {param_name}: {param_value}")

        self.logger.info("=" * 60)

    def log_sites(self, num_sites: int) -> None:
        """Record the number of sites handled in this run."""
        self.processing_stats['sites_processed'] = num_sites
        self.logger.info(f"Processing {num_sites} sites")

    def log_source_extracted(self, source: str, num_records: int, num_missing: int) -> None:
        """
        Log a completed source extraction.

        Args:
            source: Source name (e.g., 'worldclim', 'ndep')
            num_records: Number of raw records produced
            num_missing: Number of those records carrying a missing value
        """
        self.processing_stats['sources_extracted'] += 1
        self.processing_stats['records_extracted'] += num_records
        self.processing_stats['missing_values'] += num_missing

        self.logger.info(f"Extracted {num_records} records from {source}")
        if num_missing:
            self.logger.warning(f"  {num_missing} records from {source} are missing values")

    def log_processing_error(self, error_type: str, error_details: str, context: Optional[Dict] = None) -> None:
        """
        Log processing errors with context.

        Args:
            error_type: Type/category of error
            error_details: Detailed error description
            context: Optional context dictionary with additional information
        """
        self.processing_stats['errors_encountered'] += 1

        self.logger.error(f"Processing error ({error_type}): {error_details}")

        if context:
            self.logger.error("Error context:")
            for key, value in context.items():
                self.logger.error(f"  {key}: {value}")

    def log_processing_warning(self, warning_message: str, context: Optional[Dict] = None) -> None:
        """
        Log processing warnings with context.

        Args:
            warning_message: Warning message
            context: Optional context dictionary
        """
        self.processing_stats['warnings_issued'] += 1

        self.logger.warning(f"Processing warning: {warning_message}")

        if context:
            self.logger.warning("Warning context:")
            for key, value in context.items():
                self.logger.warning(f"  {key}: {value}")

    def log_processing_complete(self, summary_stats: Optional[Dict] = None) -> None:
        """
        Log completion of processing with summary statistics.

        Args:
            summary_stats: Optional additional statistics dictionary
        """
        if self.processing_start_time:
            processing_duration = datetime.now() - self.processing_start_time
            self.logger.info("=" * 60)
            self.logger.info(f"{self.current_workflow} processing completed")
            self.logger.info(f"Total processing time: {processing_duration}")
        else:
            self.logger.info("Processing completed")

        self.logger.info("Processing statistics:")
        for stat_name, stat_value in self.processing_stats.items():
            self.logger.info(f"  {stat_name}: {stat_value}")

        if summary_stats:
            self.logger.info("Additional statistics:")
            for stat_name, stat_value in summary_stats.items():
                self.logger.info(f"  {stat_name}: {stat_value}")

        self.logger.info("=" * 60)

    def get_processing_summary(self) -> Dict[str, Any]:
        """
        Get summary of current processing session.

        Returns:
            Dictionary with processing summary information
        """
        summary = {
            'workflow_type': self.current_workflow,
            'start_time': self.processing_start_time.isoformat() if self.processing_start_time else None,
            'current_time': datetime.now().isoformat(),
            'processing_stats': self.processing_stats.copy()
        }

        if self.processing_start_time:
            duration = datetime.now() - self.processing_start_time
            summary['elapsed_time'] = str(duration)

        return summary


class SiteIngestError(Exception):
    """Base exception class for site ingestion errors"""

    def __init__(self, message: str, context: Optional[Dict] = None):
        """
        Initialize site ingestion error.

        Args:
            message: Error message
            context: Optional context dictionary with additional information
        """
        super().__init__(message)
        self.context = context or {}


class InvalidSettings(SiteIngestError):
    """Malformed source settings or configuration, detected before any I/O"""
    pass


class SourceUnavailable(SiteIngestError):
    """Source storage cannot be opened or read"""
    pass


class VariableNotFound(SiteIngestError):
    """Requested variable is absent from the source vocabulary or its storage"""
    pass


class ColumnCollision(SiteIngestError):
    """Two joined tables contribute the same non-key column"""
    pass


@contextmanager
def error_context(operation_name: str, logger: Optional[ProcessingLogger] = None, **context_info):
    """
    Context manager for wrapping operations with error handling.

    Args:
        operation_name: Name of operation being performed
        logger: Optional ProcessingLogger instance
        **context_info: Additional context information

    Example:
        with error_context("reading worldclim tmin", logger, month=1):
            sample_raster(path, sites)
    """
    start_time = datetime.now()

    if logger:
        logger.logger.debug(f"Starting operation: {operation_name}")

    try:
        yield
        duration = datetime.now() - start_time

        if logger:
            logger.logger.debug(f"Completed operation: {operation_name} (duration: {duration})")

    except Exception as e:
        duration = datetime.now() - start_time
        error_context_dict = {
            'operation': operation_name,
            'duration': str(duration),
            **context_info
        }

        if logger:
            logger.log_processing_error(
                error_type=type(e).__name__,
                error_details=str(e),
                context=error_context_dict
            )

        if not isinstance(e, SiteIngestError):
            operation_lower = operation_name.lower()
            if "open" in operation_lower or "read" in operation_lower:
                raise SourceUnavailable(str(e), error_context_dict) from e
            elif "config" in operation_lower or "settings" in operation_lower:
                raise InvalidSettings(str(e), error_context_dict) from e
            else:
                raise SiteIngestError(str(e), error_context_dict) from e
        else:
            e.context.update(error_context_dict)
            raise


def save_processing_session_summary(summary: Dict[str, Any], output_path: str) -> None:
    """
    Save processing session summary to JSON file.

    Args:
        summary: Processing summary dictionary
        output_path: Path for output summary file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(summary, f, indent=2, default=str)

    logging.getLogger(LOGGER_NAME).info(f"Processing summary saved: {output_path}")
