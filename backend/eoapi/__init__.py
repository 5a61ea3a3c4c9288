"""HTTP surface, configuration and schemas for the EO projector."""
