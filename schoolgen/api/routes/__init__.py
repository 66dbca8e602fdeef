from . import archive, assets, jobs, tasks

__all__ = ["archive", "assets", "jobs", "tasks"]
