"""
Logging configuration
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, Union

from ..control.types import DroneStateSnapshot, MotionInstruction


def setup_logging(level: int = logging.INFO,
                  log_file: Optional[str] = None,
                  log_format: Optional[str] = None):
    """
    Setup logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file
        log_format: Optional custom format string
    """
    if log_format is None:
        log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    # Create formatter
    formatter = logging.Formatter(log_format, datefmt="%Y-%m-%d %H:%M:%S")

    # Get root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (if specified)
    if log_file:
        # Create log directory if needed
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Reduce verbosity of some libraries
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class FlightDataLogger:
    """
    Per-tick flight data logger for post-flight analysis.

    Writes one CSV row per tick with controller state, current command,
    vehicle position/heading and the instruction applied.
    """

    COLUMNS = [
        "time_s", "tick", "controller_state", "command", "active",
        "x", "y", "z", "heading",
        "hover", "angle", "speed", "altitude",
    ]

    def __init__(self, log_dir: Union[str, Path, None] = None):
        """
        Initialize flight data logger.

        Args:
            log_dir: Directory for flight logs (default: ~/.dronepilot/logs)
        """
        if log_dir is None:
            log_dir = Path.home() / ".dronepilot" / "logs"
        self.log_dir = Path(log_dir).expanduser()
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file: Optional[Path] = None
        self._file: Optional[TextIO] = None
        self._start_time = 0.0
        self._tick_count = 0

    @property
    def is_logging(self) -> bool:
        """Check if currently logging."""
        return self._file is not None

    def start(self, name: Optional[str] = None) -> Path:
        """
        Start a new flight log.

        Args:
            name: Optional label for the filename

        Returns:
            Path to the log file
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        if name:
            safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in name)
            filename = f"flight_{timestamp}_{safe_name}.csv"
        else:
            filename = f"flight_{timestamp}.csv"

        self.log_file = self.log_dir / filename
        self._file = open(self.log_file, 'w', buffering=1)  # Line buffering
        self._start_time = time.monotonic()
        self._tick_count = 0

        self._file.write("# drone-pilot flight log\n")
        self._file.write(f"# Started: {datetime.now().isoformat()}\n")
        self._file.write(",".join(self.COLUMNS) + "\n")

        logging.getLogger(__name__).info(f"Flight log started: {self.log_file}")
        return self.log_file

    def log(self, snapshot: DroneStateSnapshot, instruction: MotionInstruction, active: bool):
        """Log one tick."""
        if self._file is None:
            return

        elapsed = time.monotonic() - self._start_time
        self._tick_count += 1
        pos = snapshot.position

        values = [
            f"{elapsed:.3f}",
            str(self._tick_count),
            snapshot.controller_state.value,
            snapshot.current_command or "",
            "1" if active else "0",
            f"{pos.x:.4f}",
            f"{pos.y:.4f}",
            f"{pos.z:.4f}",
            f"{snapshot.heading:.4f}",
            "1" if instruction.hover else "0",
            f"{instruction.angle:.4f}",
            f"{instruction.speed:.4f}",
            f"{instruction.altitude:.4f}",
        ]
        self._file.write(",".join(values) + "\n")

    def stop(self):
        """Stop logging and close file."""
        if self._file:
            self._file.write(f"# Ended: {datetime.now().isoformat()}\n")
            self._file.write(f"# Total ticks: {self._tick_count}\n")
            self._file.close()
            self._file = None
            logging.getLogger(__name__).info(f"Flight log stopped: {self._tick_count} ticks")
