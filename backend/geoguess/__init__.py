from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config
from geoguess.services.rooms.registry import RoomRegistry

rooms = RoomRegistry()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        async_mode=flask_app.config.get('SOCKETIO_ASYNC_MODE'),
    )
    rooms.init_app(flask_app, socketio)

    from geoguess.main import main
    flask_app.register_blueprint(main)

    from geoguess.api.rooms import rooms_api
    flask_app.register_blueprint(rooms_api, url_prefix='/api/rooms')

    # Register Socket.IO event handlers on the initialized socketio instance
    from geoguess.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    @click.command('score')
    @click.argument('lat1', type=float)
    @click.argument('lng1', type=float)
    @click.argument('lat2', type=float)
    @click.argument('lng2', type=float)
    def score_command(lat1, lng1, lat2, lng2):
        """Prints the distance and round score between two coordinates."""
        from geoguess.services.rooms.scoring import haversine_km, score_for_distance
        distance = haversine_km(lat1, lng1, lat2, lng2)
        click.echo(f'distance: {distance:.2f} km')
        click.echo(f'score: {score_for_distance(distance)}')

    flask_app.cli.add_command(score_command)

    return flask_app
