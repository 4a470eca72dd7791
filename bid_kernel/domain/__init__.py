"""Pure domain layer: DTOs, calculators, and collaborator interfaces."""
