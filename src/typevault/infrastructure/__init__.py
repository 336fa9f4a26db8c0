"""Infrastructure layer: filesystem discovery, frontmatter I/O, schema files, indices.

This layer depends on the domain layer and third-party libs (ruamel.yaml).
It must never import from services, commands, or output.
"""
