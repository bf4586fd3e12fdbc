"""CDK Stacks package."""

from stacks.book_stack import BookStack
from stacks.topology import build_topology

__all__ = ["BookStack", "build_topology"]
