"""Fleet check runner — periodic Ansible health checks driven by the web API."""

__version__ = "0.1.0"
