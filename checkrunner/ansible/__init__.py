"""Ansible execution engine wrapper and the preconfigured meta/check runners."""

from .factory import (
    ANSIBLE_CONFIG_FILE,
    ANSIBLE_HOST_FILE,
    ANSIBLE_MAIN,
    ANSIBLE_META,
    CATALOG_DESTINATION_FILE,
    new_check_runner,
    new_meta_runner,
)
from .runner import AnsibleRunner
