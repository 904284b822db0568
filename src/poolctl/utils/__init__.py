from .logging import configure_logging, get_logger, bind_cluster

__all__ = ['configure_logging', 'get_logger', 'bind_cluster']
