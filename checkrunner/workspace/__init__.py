"""Workspace subsystem: provisions the ansible artifact tree from a template bundle."""

from .provisioner import (
    BundledTemplateSource,
    DirectoryTemplateSource,
    TemplateSource,
    create_ansible_files,
)
