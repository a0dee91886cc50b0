class SocketIOBroadcaster:
    """Fans room events out to every socket joined to a room's channel."""

    def __init__(self, socketio, namespace='/'):
        self.socketio = socketio
        self.namespace = namespace

    @staticmethod
    def channel(room_id: str) -> str:
        return f"room:{room_id}"

    def attach(self, sid: str, room_id: str) -> None:
        self.socketio.server.enter_room(sid, self.channel(room_id), namespace=self.namespace)

    def detach(self, sid: str, room_id: str) -> None:
        self.socketio.server.leave_room(sid, self.channel(room_id), namespace=self.namespace)

    def emit(self, room_id: str, event: str, payload=None) -> None:
        args = (payload,) if payload is not None else ()
        self.socketio.emit(event, *args, to=self.channel(room_id), namespace=self.namespace)

    def send_to(self, sid: str, event: str, payload=None) -> None:
        args = (payload,) if payload is not None else ()
        self.socketio.emit(event, *args, to=sid, namespace=self.namespace)
