
def create_app(test_config=None):

    from flask import Flask
    from .configs.user_config import BACKEND_VERSION, DEFAULT_PROJECT_ROOT, SOCKETIO_ASYNC_MODE
    from .configs.secrets import FLASK_SECRET_KEY
    from flask_cors import CORS
    import os
    import psutil
    import signal
    from flask_socketio import SocketIO
    from .docker_manager import DockerManager

    # create and configure the app
    print("Creating app...")
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_mapping(
        SECRET_KEY=FLASK_SECRET_KEY,
        PROJECT_ROOT=DEFAULT_PROJECT_ROOT,
        SOCKETIO_ASYNC_MODE=SOCKETIO_ASYNC_MODE
    )
    if test_config is not None:
        app.config.update(test_config)

    app.extensions['docker_manager'] = DockerManager(app.config['PROJECT_ROOT'])

    def find_child_processes(parent_pid):
        # This is UNIX specific.
        parent = psutil.Process(parent_pid)
        return [child.pid for child in parent.children(recursive=True)]

    def terminate_child_processes(signum, frame):
        # A docker compose pull/build outlives the wizard otherwise
        parent_pid = os.getpid()
        child_pids = find_child_processes(parent_pid)

        for child_pid in child_pids:
            try:
                child = psutil.Process(child_pid)
                child.terminate()
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        raise SystemExit(128 + signum)

    if not app.config.get('TESTING'):
        signal.signal(signal.SIGINT, terminate_child_processes)
        signal.signal(signal.SIGTERM, terminate_child_processes)

    CORS(app, supports_credentials=True)

    from . import cli
    cli.init_app(app)

    from . import profiles_api
    app.register_blueprint(profiles_api.bp)

    from . import configuration
    app.register_blueprint(configuration.bp)

    from . import install
    app.register_blueprint(install.bp)

    from . import wizard
    app.register_blueprint(wizard.bp)

    from . import rollback
    app.register_blueprint(rollback.bp)

    from . import dependencies
    app.register_blueprint(dependencies.bp)

    from . import system_check_api
    app.register_blueprint(system_check_api.bp)

    from . import resource_check_api
    app.register_blueprint(resource_check_api.bp)

    socketio = SocketIO()
    socketio.init_app(app, cors_allowed_origins="*", async_mode=app.config['SOCKETIO_ASYNC_MODE'])

    from .install import register_sockets as install_sockets
    install_sockets(socketio)

    @app.route('/', methods=('GET',))
    def home():
        return f"Kaspa All-in-One installation wizard. Version: {BACKEND_VERSION}"

    print("Backend create_app() complete.")

    return app
