"""Domain entities, collaborator protocols and exceptions for OctoSwitch."""
