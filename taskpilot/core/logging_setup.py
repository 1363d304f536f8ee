import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Un seul handler console, formaté.
    Appeler une fois au démarrage (create_app).
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Pas de doublons si l'app est recréée (tests)
    for h in list(root.handlers):
        if getattr(h, "_taskpilot", False):
            root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)
    handler._taskpilot = True
    root.addHandler(handler)

    # sqlalchemy est trop bavard en INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
