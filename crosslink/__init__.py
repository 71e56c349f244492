"""Crosslink: access gateway and peer clients for the e-filing / video-archiving integration."""
