from .controller import Controller

_controller: Controller | None = None


def set_controller(controller: Controller) -> None:
    global _controller
    _controller = controller


def get_controller() -> Controller:
    assert _controller is not None, "Controller not initialized"
    return _controller
