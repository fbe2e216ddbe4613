"""Inventory subsystem: execution request models and Ansible inventory rendering."""

from .content import create_inventory, render_inventory
from .models import Cluster, ExecutionRequest, Host
