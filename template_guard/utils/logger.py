import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class Logger:
    """Centralized logging utilities for the template validator"""

    @staticmethod
    def setup_logger(name: str = __name__, level: str = "INFO"):
        """Set up logger with consistent formatting"""

        # Get log level from environment or use provided level
        log_level = os.environ.get("LOG_LEVEL", level).upper()

        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Avoid duplicate handlers
        if logger.handlers:
            return logger

        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, log_level, logging.INFO))
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

        return logger

    @staticmethod
    def log_validation_summary(template_name: str = "", report=None, source: str = ""):
        """Log the outcome of one validation for monitoring and debugging"""
        logger = logging.getLogger("template_guard.validation")

        counts = report.counts() if report is not None else {}
        log_data = {
            "template": template_name or "unknown",
            "source": source or "<memory>",
            "errors": counts.get("error", 0),
            "warnings": counts.get("warning", 0),
            "info": counts.get("info", 0),
        }

        if report is not None and not report.is_valid:
            logger.info(f"Template rejected: {log_data}")
        else:
            logger.info(f"Template accepted: {log_data}")

