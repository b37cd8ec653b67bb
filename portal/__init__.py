"""Academic portal: server-rendered front-end for the academic REST API."""

__version__ = "1.0.0"
