"""
Configuration management for drone-pilot

All parameters are configurable and can be overridden via:
1. config/default.yaml
2. Environment variables (prefixed with DRONEPILOT_)
3. Command line arguments
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path


@dataclass
class CommandConfig:
    """Defaults applied to every command unless overridden per call"""
    max_speed: float = 0.2              # m/s horizontal
    min_speed: float = 0.05             # m/s, keeps the vehicle from stalling near target
    position_tolerance: float = 0.08    # m, horizontal arrival radius
    altitude_tolerance: float = 0.05    # m
    default_altitude: float = 1.0       # m, take-off target when none given
    ground_altitude: float = 0.05       # m, land target
    timeout_ms: float = 30000.0
    slowdown_distance: float = 0.3      # m, start of linear deceleration


@dataclass
class MissionConfig:
    """Mission runner defaults"""
    timeout_ms: float = 300000.0        # overall budget, measured from mission start
    hover_duration_ms: float = 1000.0   # hold time for hover waypoints without durationMs
    continue_on_error: bool = False


@dataclass
class SimulationConfig:
    """Simulated vehicle and tick loop"""
    update_rate_hz: float = 50.0
    climb_rate: float = 0.5             # m/s vertical speed limit
    start_altitude: float = 0.05        # m, resting height on the ground
    floor_altitude: float = 0.0


@dataclass
class BridgeConfig:
    """Remote-control websocket bridge"""
    enabled: bool = True
    url: str = "ws://localhost:8765"
    client_name: str = "drone-simulator"
    client_version: str = "1.0.0"
    auto_reconnect: bool = True
    reconnect_interval_s: float = 3.0
    command_timeout_s: float = 600.0    # upper bound on waiting for any outcome
    max_workers: int = 4


@dataclass
class InterfaceConfig:
    """Interface configuration"""

    # REST API
    rest_enabled: bool = True
    rest_host: str = "0.0.0.0"
    rest_port: int = 8080

    # Logging
    log_file: str = ""
    log_level: str = "INFO"
    data_log_dir: str = "~/.dronepilot/logs"


@dataclass
class Config:
    """Main configuration container"""

    command: CommandConfig = field(default_factory=CommandConfig)
    mission: MissionConfig = field(default_factory=MissionConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    interface: InterfaceConfig = field(default_factory=InterfaceConfig)

    SECTIONS = ('command', 'mission', 'simulation', 'bridge', 'interface')

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """Load configuration from YAML file and environment"""
        config = cls()

        # Load from file if exists
        if config_path is None:
            config_path = Path(__file__).parent.parent / "config" / "default.yaml"

        if Path(config_path).exists():
            with open(config_path, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config._update_from_dict(yaml_config)

        # Override from environment variables
        config._update_from_env()

        return config

    def _update_from_dict(self, d: dict):
        """Update config from dictionary (e.g., YAML)"""
        for section_name, section_data in d.items():
            if section_name in self.SECTIONS and isinstance(section_data, dict):
                section = getattr(self, section_name)
                for key, value in section_data.items():
                    if hasattr(section, key):
                        setattr(section, key, value)

    def _update_from_env(self):
        """Override config from environment variables"""
        prefix = "DRONEPILOT_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                # Parse DRONEPILOT_SECTION_KEY format
                parts = key[len(prefix):].lower().split("_", 1)
                if len(parts) == 2:
                    section_name, param_name = parts
                    if section_name in self.SECTIONS:
                        section = getattr(self, section_name)
                        if hasattr(section, param_name):
                            # Type conversion
                            current_value = getattr(section, param_name)
                            if isinstance(current_value, bool):
                                setattr(section, param_name, value.lower() in ('true', '1', 'yes'))
                            elif isinstance(current_value, int):
                                setattr(section, param_name, int(value))
                            elif isinstance(current_value, float):
                                setattr(section, param_name, float(value))
                            else:
                                setattr(section, param_name, value)

    def save(self, config_path: str):
        """Save current configuration to YAML file"""
        data = {}
        for section_name in self.SECTIONS:
            section = getattr(self, section_name)
            data[section_name] = {k: v for k, v in section.__dict__.items()}

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config):
    """Set the global configuration instance"""
    global _config
    _config = config
