import sys
import time
import shlex
import subprocess
from dataclasses import dataclass

import docker
from flask import current_app

from .profiles.profiles import PROFILE_CODES, get_profile_by_code, sort_profile_codes
from .profiles.manager import resolve_profile_dependencies
from .config_generator import load_env_file
from .configs.user_config import (
    COMPOSE_UP_TIMEOUT,
    COMPOSE_UP_RETRIES,
    COMPOSE_RETRY_DELAY,
    PULL_TIMEOUT,
    BUILD_TIMEOUT,
    POST_START_SETTLE,
    DEFAULT_LOG_LINES,
)
from .configs.str_constants import COMPOSE_PROJECT_NAME
from .configs.secrets import DOCKER_HOST
from .paths import get_project_root, get_paths
from .exceptions import DockerError, DockerUnavailable


@dataclass
class CommandResult:
    argv: list
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self):
        return self.returncode == 0

    # What to show a user when it failed
    @property
    def error(self):
        return (self.stderr or self.stdout or f"exit code {self.returncode}").strip()


def _fmt_argv(argv):
    return " ".join(shlex.quote(a) for a in argv)


# Never raises for a failed command; callers look at the result
def run_cmd(argv, cwd=None, timeout=None) -> CommandResult:
    argv = list(argv)
    print(f"[DOCKER] CMD {_fmt_argv(argv)}", file=sys.stderr)
    try:
        p = subprocess.run(
            argv,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        print(f"[DOCKER] Timed out after {timeout}s: {_fmt_argv(argv)}", file=sys.stderr)
        return CommandResult(argv=argv, returncode=-1, stdout="", stderr=f"Timed out after {timeout} seconds")
    except FileNotFoundError:
        return CommandResult(argv=argv, returncode=127, stdout="", stderr=f"{argv[0]}: command not found")

    if p.returncode != 0:
        print(f"[DOCKER] Failed ({p.returncode}): {(p.stderr or '').strip()}", file=sys.stderr)
    return CommandResult(argv=argv, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)


def _report(progress_cb, **kwargs):
    if progress_cb:
        progress_cb(kwargs)


"""

Everything that talks to docker: the compose CLI (pull / build / up / down, in the project root)
and the docker SDK for looking at containers.

"""

class DockerManager():

    def __init__(self, project_root=None) -> None:
        self.root = project_root or get_project_root()
        self._client = None

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = docker.DockerClient(base_url=DOCKER_HOST) if DOCKER_HOST else docker.from_env()
            except docker.errors.DockerException as e:
                raise DockerUnavailable(f"Cannot connect to Docker: {e}")
        return self._client

    def is_docker_available(self):
        try:
            return bool(self.client.ping())
        except (DockerUnavailable, docker.errors.DockerException) as e:
            print(f"[DOCKER] Docker not available: {e}", file=sys.stderr)
            return False

    #
    # Profile maps
    #

    def get_compose_profiles(self, profiles):
        return sort_profile_codes(resolve_profile_dependencies(profiles))

    def get_containers_for_profiles(self, profiles):
        containers = []
        for code in self.get_compose_profiles(profiles):
            containers.extend(get_profile_by_code(code).containers)
        return containers

    def get_images_for_profiles(self, profiles, config=None):
        if config is None:
            env = load_env_file(self._env_path())
            config = env['config'] if env['success'] else {}
        images = []
        for code in self.get_compose_profiles(profiles):
            for image in get_profile_by_code(code).get_images(config):
                if image not in images:
                    images.append(image)
        return images

    def get_build_services_for_profiles(self, profiles):
        services = []
        for code in self.get_compose_profiles(profiles):
            services.extend(get_profile_by_code(code).build_services)
        return services

    def _env_path(self):
        return get_paths(self.root)['env']

    def _compose(self, profiles, *args):
        argv = ['docker', 'compose']
        for code in self.get_compose_profiles(profiles):
            argv.extend(['--profile', code])
        argv.extend(args)
        return argv

    #
    # Install steps
    #

    # Returns one {image, success, error} per image; a failed pull doesn't stop the others
    def pull_images(self, profiles, progress_cb=None, config=None):
        images = self.get_images_for_profiles(profiles, config)
        results = []
        for i, image in enumerate(images):
            _report(progress_cb, stage='pull', current=i, total=len(images), image=image, message=f"Pulling {image}...")
            res = run_cmd(['docker', 'pull', image], cwd=self.root, timeout=PULL_TIMEOUT)
            results.append({'image': image, 'success': res.ok, 'error': None if res.ok else res.error})
        _report(progress_cb, stage='pull', current=len(images), total=len(images), image=None, message="Images pulled")
        return results

    def build_services(self, profiles, progress_cb=None):
        services = self.get_build_services_for_profiles(profiles)
        results = []
        for i, service in enumerate(services):
            _report(progress_cb, stage='build', current=i, total=len(services), service=service, message=f"Building {service}...")
            res = run_cmd(self._compose(profiles, 'build', service), cwd=self.root, timeout=BUILD_TIMEOUT)
            results.append({'service': service, 'success': res.ok, 'error': None if res.ok else res.error})
        _report(progress_cb, stage='build', current=len(services), total=len(services), service=None, message="Services built")
        return {
            'success': all(x['success'] for x in results),
            'services': results,
        }

    # Containers left over from an earlier install (or another compose project) with our names
    def _remove_conflicting_containers(self, profiles):
        for name in self.get_containers_for_profiles(profiles):
            status = self.get_service_status(name)
            if status['exists']:
                print(f"[DOCKER] Removing existing container {name}", file=sys.stderr)
                run_cmd(['docker', 'stop', name], cwd=self.root, timeout=60)
                run_cmd(['docker', 'rm', name], cwd=self.root, timeout=60)

    def start_services(self, profiles, progress_cb=None):
        _report(progress_cb, stage='deploy', message="Stopping previous containers...")
        down = run_cmd(['docker', 'compose', 'down', '--remove-orphans'], cwd=self.root, timeout=COMPOSE_UP_TIMEOUT)
        if not down.ok:
            # Nothing was running, most likely
            print(f"[DOCKER] compose down failed, continuing: {down.error}", file=sys.stderr)

        self._remove_conflicting_containers(profiles)

        _report(progress_cb, stage='deploy', message="Starting services...")
        argv = self._compose(profiles, 'up', '-d')
        delay = COMPOSE_RETRY_DELAY
        res = None
        for attempt in range(COMPOSE_UP_RETRIES + 1):
            res = run_cmd(argv, cwd=self.root, timeout=COMPOSE_UP_TIMEOUT)
            if res.ok:
                break
            if attempt < COMPOSE_UP_RETRIES:
                print(f"[DOCKER] compose up failed (attempt {attempt+1}), retrying in {delay}s", file=sys.stderr)
                _report(progress_cb, stage='deploy', message=f"Start failed, retrying in {delay}s...")
                time.sleep(delay)
                delay *= 2

        if not res.ok:
            raise DockerError("Failed to start services", {'error': res.error, 'command': _fmt_argv(argv)})

        time.sleep(POST_START_SETTLE)
        validation = self.validate_services(profiles)
        if validation['anyFailed']:
            failed = [x for x in validation['services'] if not x['running']]
            raise DockerError('Some services failed to start', {
                'services': failed,
                'summary': validation['summary'],
            })

        return {
            'success': True,
            'output': res.stdout,
            'validation': validation,
        }

    #
    # Inspection
    #

    def get_service_status(self, name):
        try:
            container = self.client.containers.get(name)
        except docker.errors.NotFound:
            return {'exists': False, 'running': False, 'status': 'not_found', 'state': None, 'id': None}
        state = container.attrs.get('State', {})
        return {
            'exists': True,
            'running': container.status == 'running',
            'status': container.status,
            'state': state,
            'id': container.short_id,
        }

    def validate_services(self, profiles):
        services = []
        summary = {'total': 0, 'running': 0, 'stopped': 0, 'missing': 0}
        for name in self.get_containers_for_profiles(profiles):
            status = self.get_service_status(name)
            summary['total'] += 1
            if not status['exists']:
                summary['missing'] += 1
            elif status['running']:
                summary['running'] += 1
            else:
                summary['stopped'] += 1
            services.append({
                'name': name,
                'exists': status['exists'],
                'running': status['running'],
                'status': status['status'],
            })
        return {
            'services': services,
            'allRunning': summary['total'] > 0 and summary['running'] == summary['total'],
            'anyFailed': summary['missing'] > 0 or summary['stopped'] > 0,
            'summary': summary,
        }

    def stop_services(self):
        res = run_cmd(self._compose(PROFILE_CODES, 'down'), cwd=self.root, timeout=COMPOSE_UP_TIMEOUT)
        if not res.ok:
            return {'success': False, 'error': res.error}
        return {'success': True, 'output': res.stdout or res.stderr}

    def get_logs(self, service, lines=DEFAULT_LOG_LINES):
        res = run_cmd(['docker', 'logs', '--tail', str(int(lines)), service], cwd=self.root, timeout=30)
        if not res.ok:
            return {'success': False, 'error': res.error}
        # docker logs replays the container's stderr on our stderr
        return {'success': True, 'logs': (res.stdout or '') + (res.stderr or '')}

    def remove_services(self, names, remove_data=False):
        summary = {'total': len(names), 'removed': 0, 'not_found': 0, 'failed': 0, 'volumes_removed': 0, 'results': []}
        for name in names:
            try:
                container = self.client.containers.get(name)
                container.remove(force=True)
                summary['removed'] += 1
                summary['results'].append({'name': name, 'status': 'removed'})
            except docker.errors.NotFound:
                summary['not_found'] += 1
                summary['results'].append({'name': name, 'status': 'not_found'})
            except docker.errors.APIError as e:
                print(f"[DOCKER] Could not remove {name}: {e}", file=sys.stderr)
                summary['failed'] += 1
                summary['results'].append({'name': name, 'status': 'failed', 'error': str(e)})

            if remove_data:
                volume_name = f"{COMPOSE_PROJECT_NAME}_{name}-data"
                try:
                    self.client.volumes.get(volume_name).remove(force=True)
                    summary['volumes_removed'] += 1
                except docker.errors.NotFound:
                    pass
                except docker.errors.APIError as e:
                    print(f"[DOCKER] Could not remove volume {volume_name}: {e}", file=sys.stderr)
        return summary

    def get_running_services(self):
        try:
            containers = self.client.containers.list(filters={'label': f"com.docker.compose.project={COMPOSE_PROJECT_NAME}"})
        except docker.errors.APIError as e:
            raise DockerError(f"Could not list containers: {e}")
        return [{
            'name': c.name,
            'service': c.labels.get('com.docker.compose.service'),
            'status': c.status,
            'image': c.image.tags[0] if c.image and c.image.tags else None,
            'id': c.short_id,
        } for c in containers]


# The app's shared instance; see create_app()
def get_docker_manager() -> DockerManager:
    return current_app.extensions['docker_manager']
