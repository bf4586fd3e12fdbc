#!/usr/bin/env python3
"""CDK App entry point for BookStack infrastructure."""

import logging
import os

import aws_cdk as cdk

from stacks.config import get_settings
from stacks.topology import build_topology

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = cdk.App()

# -c environments=devA,devB (comma-separated) overrides
# BOOKSTACK_ENVIRONMENTS, which must be JSON: '["devA", "devB"]'
environments = app.node.try_get_context("environments")
if environments:
    environments = [e.strip() for e in environments.split(",") if e.strip()]

build_topology(
    app,
    settings,
    environments=environments,
    account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
)

app.synth()
