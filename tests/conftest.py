"""Shared test fixtures for fitpick."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from fitpick.config import ProjectConfig, save_config
from fitpick.data.dataset import Dataset
from fitpick.search.models import Item, RawItem

PLANNED = "planned"
READY = "ready"

PLANNED_ROWS = [
    {"area": 62.5, "category": "A", "building": "3", "door": "12", "room": "401"},
    {"area": 88.0, "category": "B类", "building": "3", "door": "12", "room": "402"},
    {"area": 45.3, "category": "C", "building": "5"},
    {"area": 120.0, "category": "a", "building": "7"},
    {"area": 30.0, "category": "D"},
    {"area": "n/a", "category": "A"},
]

READY_ROWS = [
    {"area": 55.0, "category": "A", "community": "East Garden", "building": "1", "room": "101"},
    {"area": 70.2, "category": "B", "community": "East Garden", "building": "2"},
    {"area": 40.0, "category": "C", "community": "West Park"},
    {"area": 101.5, "category": "C类", "community": "West Park", "door": "8"},
]


def raw(size, category, provenance=PLANNED, **metadata) -> RawItem:
    return RawItem(size=size, category=category, provenance=provenance, metadata=metadata)


def item(size, category, provenance=PLANNED, index=0, **metadata) -> Item:
    return Item(
        size=float(size), category=category, provenance=provenance, index=index, metadata=metadata
    )


@pytest.fixture
def data_project(tmp_path: Path) -> Path:
    """A directory holding planned/ready unit files as JSON."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "planned.json").write_text(
        json.dumps(PLANNED_ROWS, ensure_ascii=False), encoding="utf-8"
    )
    (data_dir / "ready.json").write_text(
        json.dumps(READY_ROWS, ensure_ascii=False), encoding="utf-8"
    )
    return tmp_path


@pytest.fixture
def project_config(data_project: Path) -> ProjectConfig:
    config = ProjectConfig(name="test-project", root_path=str(data_project))
    config.data.planned_path = "data/planned.json"
    config.data.ready_path = "data/ready.json"
    config.server.executor = "thread"
    config.server.workers = 2
    return config


@pytest.fixture
def project(data_project: Path, project_config: ProjectConfig) -> Path:
    """A data project with a saved .fitpick/config.json."""
    save_config(data_project, project_config)
    return data_project


@pytest.fixture
def dataset(project: Path, project_config: ProjectConfig) -> Dataset:
    return Dataset.load(project_config, project)


@pytest.fixture
def scenario_a_items() -> list[RawItem]:
    """A:[10,20], B:[5] (ready), C:[8,30]."""
    return [
        raw(10, "A"),
        raw(20, "A"),
        raw(5, "B", READY),
        raw(8, "C"),
        raw(30, "C"),
    ]
