"""
Workspace-scoped infrastructure: per-environment parameter resolution
feeding CDKTF stacks.
"""

__version__ = "0.1.0"
