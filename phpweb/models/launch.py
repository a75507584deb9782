"""
Launch Metadata Model
Pydantic models for the process list written to ``<layers>/launch.toml``.
"""
from pydantic import BaseModel


class Process(BaseModel):
    type: str
    command: str


class LaunchMetadata(BaseModel):
    processes: list[Process] = []
