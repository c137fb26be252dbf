"""
Configuration management for fieldtask.

This module defines a dataclass ``Config`` that holds the settings of the
technician client. It can be loaded from a YAML file or constructed manually.
The configuration covers the backend location, request timeout, camera backend
selection and logging.

Example YAML configuration (config/field.yaml):

```yaml
base_url: "https://service.example.com"
submit_path: "/admin/api/serviceman/submit"
tasks_path: "/admin/api/serviceman/my-tasks"
timeout: 30                 # seconds per HTTP request
camera_backend: "rpi"       # "mock" on development machines
camera_facing: "environment"
camera_ready_timeout: 10    # seconds to wait for the stream to come up
max_images: 10
log_file: "./fieldtask_data/fieldtask.log"
```

Using the ``Config.from_yaml`` method simplifies loading configuration:

```python
from fieldtask.config import Config
config = Config.from_yaml('config/field.yaml')
```
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Any
import yaml

from .buffer import MAX_IMAGES


@dataclass
class Config:
    """Configuration settings for the fieldtask client."""

    base_url: str
    submit_path: str = '/admin/api/serviceman/submit'
    tasks_path: str = '/admin/api/serviceman/my-tasks'
    timeout: int = 30  # seconds
    camera_backend: str = 'mock'
    camera_facing: str = 'environment'
    camera_ready_timeout: float = 10.0  # seconds
    max_images: int = MAX_IMAGES
    image_width: int = 1280
    image_height: int = 960
    log_file: str = './fieldtask.log'

    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 1 <= self.max_images <= MAX_IMAGES:
            raise ValueError(f'max_images must be between 1 and {MAX_IMAGES}, got {self.max_images}')

    @classmethod
    def from_yaml(cls, path: str) -> 'Config':
        """Load configuration from a YAML file.

        Raises:
            FileNotFoundError: if the YAML file cannot be found.
            yaml.YAMLError: if the YAML file is invalid.
            KeyError: if required keys are missing.
        """
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        required_keys = ['base_url']
        missing = [k for k in required_keys if k not in data]
        if missing:
            raise KeyError(f'Missing required configuration keys: {missing}')

        return cls(
            base_url=data['base_url'],
            submit_path=data.get('submit_path', '/admin/api/serviceman/submit'),
            tasks_path=data.get('tasks_path', '/admin/api/serviceman/my-tasks'),
            timeout=data.get('timeout', 30),
            camera_backend=data.get('camera_backend', 'mock'),
            camera_facing=data.get('camera_facing', 'environment'),
            camera_ready_timeout=float(data.get('camera_ready_timeout', 10.0)),
            max_images=int(data.get('max_images', MAX_IMAGES)),
            image_width=data.get('image_width', 1280),
            image_height=data.get('image_height', 960),
            log_file=data.get('log_file', './fieldtask.log'),
            extra={k: v for k, v in data.items() if k not in cls.__annotations__},
        )

    @property
    def submit_url(self) -> str:
        return self.base_url.rstrip('/') + self.submit_path

    @property
    def tasks_url(self) -> str:
        return self.base_url.rstrip('/') + self.tasks_path

    def ensure_paths(self) -> None:
        """Ensure that the directory for the log file exists.

        This method is idempotent.
        """
        log_dir = os.path.dirname(self.log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
