"""Request normalization, image pipeline and upstream client."""
