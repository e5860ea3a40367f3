from datetime import datetime

import pytest

from models.project import AnalysisConfig, ProjectFinancials
from models.records import CostEntry, ProgressSnapshot, TaskRecord, WBSCostLine


@pytest.fixture
def schedule_tasks():
    """Foundation done, structure 60% through, finishing not started."""
    return (
        TaskRecord(task_id='task-1', title='Foundation Work', budget=200_000,
                   start_date='2025-01-01', end_date='2025-03-01', progress=100),
        TaskRecord(task_id='task-2', title='Structural Work', budget=600_000,
                   start_date='2025-03-01', end_date='2025-07-01', progress=60),
        TaskRecord(task_id='task-3', title='Finishing Work', budget=150_000,
                   start_date='2025-07-01', end_date='2025-09-01', progress=0),
    )


@pytest.fixture
def cost_entries():
    return (
        CostEntry(amount=10_000, date='2025-01-05', category='material', description='Cement'),
        CostEntry(amount=20_000, date='2025-01-10', category='labor', description='Crew week 2'),
        CostEntry(amount=5_000, date='2025-01-20', category='material', description='Rebar'),
    )


@pytest.fixture
def january_project(cost_entries):
    """30-day project, data date halfway through."""
    return ProjectFinancials(
        project_id='PRJ-001',
        project_name='Warehouse Extension',
        bac=100_000,
        plan_start=datetime(2025, 1, 1),
        plan_finish=datetime(2025, 1, 31),
        data_date=datetime(2025, 1, 16),
        cost_entries=cost_entries,
        progress=(
            ProgressSnapshot(percent_complete=20, as_of='2025-01-06'),
            ProgressSnapshot(percent_complete=40, as_of='2025-01-16'),
            ProgressSnapshot(percent_complete=70, as_of='2025-01-25'),
        ),
    )


@pytest.fixture
def wbs_lines():
    return [
        WBSCostLine(wbs_code='1.1', wbs_name='Foundation', budget=200_000, planned=200_000,
                    earned=200_000, actual=250_000, committed=0),
        WBSCostLine(wbs_code='1.2', wbs_name='Structure', budget=600_000, planned=400_000,
                    earned=360_000, actual=560_000, committed=20_000),
        WBSCostLine(wbs_code='1.3', wbs_name='Finishing', budget=150_000, planned=0,
                    earned=0, actual=0, committed=150_000),
        WBSCostLine(wbs_code='1.4', wbs_name='Site Works', budget=100_000, planned=50_000,
                    earned=50_000, actual=40_000, committed=10_000),
    ]


@pytest.fixture
def config():
    return AnalysisConfig()
