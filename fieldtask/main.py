"""
Command line entry point for fieldtask.

This script lets a technician submit a service task with photos taken from the
configured camera, and list or search the tasks they submitted before. The
core components are configurable via a YAML configuration file (see
:mod:`fieldtask.config`).

Usage:

```bash
export FIELDTASK_TOKEN=...
fieldtask --config config/field.yaml submit --fields visit.yaml --photos 3
fieldtask --config config/field.yaml submit --set organizationName="Acme Corp" --image rear.jpg
fieldtask --config config/field.yaml tasks --search acme --order oldest
```
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, List, Optional

import yaml

from .camera.base import CameraBackend, CapturedImage
from .camera.mock_camera import MockCamera
from .camera.rpi_camera import RpiCamera
from .composer import TaskComposer
from .config import Config
from .draft import lookup_field
from .errors import DraftInvalid, FieldTaskError
from .query import TaskQuery, format_date
from .session import AuthSession
from .sync.client import Submitted, SubmissionClient, TaskListClient


class FieldTaskApp:
    """Wires configuration, camera and clients together for the CLI."""

    def __init__(self, config: Config, setup_logging: bool = True) -> None:
        self.config = config
        config.ensure_paths()
        if setup_logging:
            self._setup_logging()
        self.logger = logging.getLogger(__name__)

    def _setup_logging(self) -> None:
        """Configure logging to file and console."""
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(threadName)s - %(message)s'
        )
        fh = logging.FileHandler(self.config.log_file)
        fh.setFormatter(formatter)
        logger.addHandler(fh)
        # Console output goes to stderr so stdout stays clean for results
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    def init_camera(self) -> CameraBackend:
        """Instantiate the camera backend based on configuration."""
        if self.config.camera_backend == 'mock':
            return MockCamera(image_width=self.config.image_width, image_height=self.config.image_height)
        elif self.config.camera_backend == 'rpi':
            indexes = self.config.extra.get('camera_indexes')
            return RpiCamera(
                image_width=self.config.extra.get('rpi_width'),
                image_height=self.config.extra.get('rpi_height'),
                camera_indexes=indexes,
            )
        else:
            raise ValueError(f'Unknown camera backend: {self.config.camera_backend}')

    def submit(
        self,
        auth: AuthSession,
        fields: Dict[str, str],
        photos: int = 0,
        image_paths: Optional[List[str]] = None,
    ) -> int:
        """Build a draft from ``fields`` plus camera/file images and submit it."""
        client = SubmissionClient(self.config.submit_url, timeout=self.config.timeout)
        composer = TaskComposer(self.config, backend=self.init_camera(), client=client)
        try:
            for name, value in fields.items():
                composer.draft.set_field(name, value)
            for path in image_paths or []:
                with open(path, 'rb') as f:
                    if not composer.draft.images.append(CapturedImage(data=f.read())):
                        self.logger.warning('Image limit reached; skipping %s', path)
            if photos:
                if not composer.open_camera():
                    print(composer.error, file=sys.stderr)
                    return 1
                for _ in range(photos):
                    if composer.capture() is None:
                        break
                composer.close_camera()
                if composer.error:
                    print(composer.error, file=sys.stderr)
                    return 1
            try:
                result = composer.submit(auth)
            except DraftInvalid as exc:
                print(exc.message, file=sys.stderr)
                return 1
        finally:
            composer.close_camera()
            client.close()

        if isinstance(result, Submitted):
            print(f'Task submitted with ID: {result.task_id}')
            return 0
        print(result.message, file=sys.stderr)
        return 1

    def list_tasks(self, auth: AuthSession, search: str = '', order: str = 'newest') -> int:
        client = TaskListClient(self.config.tasks_url, timeout=self.config.timeout)
        query = TaskQuery(client)
        try:
            query.fetch_all(auth)
        except FieldTaskError as exc:
            print(exc.message, file=sys.stderr)
            return 1
        finally:
            client.close()
        query.filter(search)
        query.sort(order)
        print(query.summary())
        for task in query.view:
            print(f'{task.task_id}\t{format_date(task.created_at)}\t'
                  f'{task.organization_name}\t{task.product_name}\t{len(task.images)} photos')
        return 0


def parse_field_assignments(assignments: List[str]) -> Dict[str, str]:
    """Turn ``name=value`` strings into a field mapping.

    Raises:
        ValueError: on a malformed assignment or unknown field name.
    """
    fields: Dict[str, str] = {}
    for item in assignments:
        name, sep, value = item.partition('=')
        if not sep:
            raise ValueError(f'Expected name=value, got {item!r}')
        fields[lookup_field(name.strip()).wire_name] = value
    return fields


def load_fields_file(path: str) -> Dict[str, str]:
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f'{path} must contain a mapping of task fields')
    return {lookup_field(str(k)).wire_name: '' if v is None else str(v) for k, v in data.items()}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Field service task client')
    parser.add_argument('--config', '-c', type=str, required=True, help='Path to YAML configuration file')
    parser.add_argument('--token', type=str, help='Bearer token (defaults to $FIELDTASK_TOKEN)')
    sub = parser.add_subparsers(dest='command', required=True)

    submit = sub.add_parser('submit', help='Submit a new task')
    submit.add_argument('--fields', type=str, help='YAML file with task fields')
    submit.add_argument('--set', dest='assignments', action='append', default=[],
                        metavar='NAME=VALUE', help='Set one task field (repeatable)')
    submit.add_argument('--photos', type=int, default=0, help='Number of photos to take with the camera')
    submit.add_argument('--image', dest='images', action='append', default=[],
                        metavar='PATH', help='Attach a JPEG file (repeatable)')

    tasks = sub.add_parser('tasks', help='List submitted tasks')
    tasks.add_argument('--search', type=str, default='', help='Filter by organization name')
    tasks.add_argument('--order', choices=['newest', 'oldest'], default='newest')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = Config.from_yaml(args.config)
    app = FieldTaskApp(config)
    try:
        auth = AuthSession(token=args.token) if args.token else AuthSession.from_env()
    except ValueError:
        print('No token given; pass --token or set FIELDTASK_TOKEN', file=sys.stderr)
        return 2

    if args.command == 'submit':
        try:
            fields = load_fields_file(args.fields) if args.fields else {}
            fields.update(parse_field_assignments(args.assignments))
        except (KeyError, ValueError) as exc:
            print(exc.args[0] if exc.args else exc, file=sys.stderr)
            return 2
        return app.submit(auth, fields, photos=args.photos, image_paths=args.images)
    return app.list_tasks(auth, search=args.search, order=args.order)


if __name__ == '__main__':
    sys.exit(main())
