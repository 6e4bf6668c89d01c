"""
Configuration management for depth2midi sessions.

Handles loading and saving of pipeline configuration using INI files. Each
configuration group of PipelineState maps onto one INI section; keys missing
from the file keep their defaults.

Sections:
- [Sensor]        raw frame size, fps
- [Calibration]   source quadrilateral ("x,y; x,y; x,y; x,y"), rectified size
- [Conditioning]  valid depth band, bilateral filter
- [Background]    vertical box height
- [Occlusion]     hand margin, median / open / dilate sizes
- [Keyboard]      key count and geometry
- [Thresholds]    mute / sound distances, velocity gain, history size
- [Capture]       polling, MIDI and event log settings
"""
import configparser
import copy
import logging
import os
from dataclasses import fields
from typing import List, Optional, Tuple

from depth2midi.core.app_state import PipelineState
from depth2midi.detection.base import DetectionConfigError

# INI section name -> PipelineState attribute
SECTIONS = {
    'Sensor': 'sensor',
    'Calibration': 'calibration',
    'Conditioning': 'conditioning',
    'Background': 'background',
    'Occlusion': 'occlusion',
    'Keyboard': 'keyboard',
    'Thresholds': 'thresholds',
    'Capture': 'capture',
}


def parse_quad(text: str) -> List[Tuple[float, float]]:
    """Parse "x,y; x,y; x,y; x,y" into four points."""
    points = []
    for chunk in text.split(';'):
        chunk = chunk.strip()
        if not chunk:
            continue
        x_str, y_str = chunk.split(',')
        points.append((float(x_str), float(y_str)))
    if len(points) != 4:
        raise ValueError(f"expected 4 points, got {len(points)}")
    return points


def format_quad(points: List[Tuple[float, float]]) -> str:
    return '; '.join(f"{x:g},{y:g}" for x, y in points)


class ConfigManager:
    """Handles INI file operations for pipeline state."""

    def __init__(self, state: Optional[PipelineState] = None):
        self.state = state or PipelineState()

    def _read_group(self, section: configparser.SectionProxy, group) -> None:
        for f in fields(group):
            if f.name not in section:
                continue
            raw = section.get(f.name)
            try:
                if f.name == 'source_quad':
                    value = parse_quad(raw)
                elif f.type is bool:
                    value = section.getboolean(f.name)
                elif f.type is int:
                    value = section.getint(f.name)
                elif f.type is float:
                    value = section.getfloat(f.name)
                else:
                    # Optional[str] fields: empty means unset
                    value = raw.strip() or None
            except ValueError as e:
                raise DetectionConfigError(
                    f"Invalid value for [{section.name}] {f.name} = {raw!r}: {e}"
                ) from e
            setattr(group, f.name, value)
            logging.debug(f"[CONFIG-LOAD] [{section.name}] {f.name} = {value!r}")

    def load_config(self, ini_path: str) -> PipelineState:
        """
        Load configuration from an INI file into the managed state.

        Raises:
            DetectionConfigError: If the file is missing, unreadable or invalid
        """
        logging.info(f"Attempting to load config from: {ini_path}")
        if not ini_path or not os.path.exists(ini_path):
            raise DetectionConfigError(f"INI file not found at: {ini_path}")

        config = configparser.ConfigParser()
        try:
            config.read(ini_path, encoding='utf-8')
        except configparser.Error as e:
            raise DetectionConfigError(f"Could not parse {ini_path}: {e}") from e

        # the managed state is only replaced once the whole file validates
        state = copy.deepcopy(self.state)
        for section_name in config.sections():
            if section_name not in SECTIONS:
                logging.warning(f"[CONFIG-LOAD] Ignoring unknown section [{section_name}]")
                continue
            self._read_group(config[section_name], getattr(state, SECTIONS[section_name]))

        errors = state.validate()
        if errors:
            raise DetectionConfigError(
                f"Invalid configuration in {ini_path}: " + "; ".join(errors), errors
            )

        self.state = state
        logging.info(f"[CONFIG-LOAD] [OK] Config loaded from: {ini_path}")
        return self.state

    def save_config(self, ini_path: str) -> bool:
        """Write the managed state to an INI file."""
        config = configparser.ConfigParser()
        for section_name, attr in SECTIONS.items():
            group = getattr(self.state, attr)
            config[section_name] = {}
            for f in fields(group):
                value = getattr(group, f.name)
                if f.name == 'source_quad':
                    config[section_name][f.name] = format_quad(value)
                elif value is None:
                    config[section_name][f.name] = ''
                else:
                    config[section_name][f.name] = str(value)

        try:
            directory = os.path.dirname(ini_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(ini_path, 'w', encoding='utf-8') as configfile:
                config.write(configfile)
            logging.info(f"[CONFIG-SAVE] [OK] Config saved to: {ini_path}")
            return True
        except OSError as e:
            logging.error(f"Error saving config to {ini_path}: {e}")
            return False
