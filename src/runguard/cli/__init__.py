"""
runguard CLI (Typer).

Entry point: ``runguard`` (see ``[project.scripts]``).
"""
