"""Convert tarball packages into Slackware packages with a regenerated slack-desc."""

__version__ = "0.1.0"
