"""
nodelambda - Package a Node.js app's build output as a minimal lambda.

Runs the project's build script, traces the files its server entrypoint
needs at runtime, and bundles them with a launcher into a deployable unit
plus routing rules.
"""

__version__ = "0.1.0"
