"""core/ -- Configuration kernel. Imports nothing from auth/ or web/."""
