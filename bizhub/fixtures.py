"""
Demo data for an empty workspace.

Goes through the public store operations so derived fields
(project counts, task counts, actual hours) come out consistent.
Time entries are spread over the past four months relative to the
hub's clock, so the dashboard has history to chart.
"""

from datetime import timedelta

from bizhub.models.records import (
    ClientStatus,
    Priority,
    ProjectStatus,
    TaskStatus,
)
from bizhub.orchestrator import BusinessHub


DEMO_CLIENTS = [
    {
        "name": "John Smith",
        "email": "john.smith@example.com",
        "phone": "+1 (555) 123-4567",
        "company": "Tech Solutions Inc.",
        "status": ClientStatus.ACTIVE,
        "notes": "Great client, always pays on time.",
    },
    {
        "name": "Sarah Johnson",
        "email": "sarah@creativestudio.com",
        "company": "Creative Studio",
        "status": ClientStatus.ACTIVE,
    },
    {
        "name": "Mike Brown",
        "email": "mike.brown@startup.io",
        "company": "Innovation Startup",
        "status": ClientStatus.PENDING,
    },
    {
        "name": "Lisa Davis",
        "email": "lisa@freelancer.com",
        "status": ClientStatus.INACTIVE,
    },
]

# (client index, project fields)
DEMO_PROJECTS = [
    (0, {
        "title": "E-commerce Platform Redesign",
        "status": ProjectStatus.ACTIVE,
        "priority": Priority.HIGH,
        "budget": 15000,
        "total_spent": 8500,
        "hourly_rate": 75,
        "estimated_hours": 200,
    }),
    (1, {
        "title": "Mobile App Development",
        "status": ProjectStatus.ACTIVE,
        "priority": Priority.MEDIUM,
        "budget": 12000,
        "total_spent": 3000,
        "hourly_rate": 80,
        "estimated_hours": 150,
    }),
    (2, {
        "title": "Website Maintenance",
        "status": ProjectStatus.ON_HOLD,
        "priority": Priority.LOW,
        "budget": 2000,
        "total_spent": 1200,
        "hourly_rate": 60,
        "estimated_hours": 40,
    }),
    (0, {
        "title": "API Integration Project",
        "status": ProjectStatus.COMPLETED,
        "priority": Priority.MEDIUM,
        "budget": 5000,
        "total_spent": 4800,
        "hourly_rate": 75,
        "estimated_hours": 67,
    }),
]

# (project index, task fields)
DEMO_TASKS = [
    (0, {"title": "Set up project repository", "status": TaskStatus.COMPLETED, "estimated_hours": 4}),
    (0, {"title": "Design database schema", "status": TaskStatus.COMPLETED, "estimated_hours": 8}),
    (0, {"title": "Implement user authentication", "status": TaskStatus.IN_PROGRESS, "estimated_hours": 12}),
    (1, {"title": "Wireframes and mockups", "status": TaskStatus.REVIEW, "estimated_hours": 10}),
    (1, {"title": "Build portfolio screens", "status": TaskStatus.TODO, "estimated_hours": 24}),
    (2, {"title": "Update CMS plugins", "status": TaskStatus.BLOCKED, "estimated_hours": 3}),
    (3, {"title": "Sync partner inventory", "status": TaskStatus.COMPLETED, "estimated_hours": 20}),
]

# (task index, days ago, minutes, billable)
DEMO_ENTRIES = [
    (0, 100, 210, True),
    (1, 95, 345, True),
    (6, 80, 540, True),
    (6, 62, 300, True),
    (2, 45, 150, True),
    (3, 30, 90, False),
    (2, 20, 240, True),
    (3, 12, 180, True),
    (5, 8, 60, False),
    (4, 2, 120, True),
]


async def seed_demo_data(hub: BusinessHub, force: bool = False) -> bool:
    """
    Populate the hub with demo records.

    Args:
        hub: Target components
        force: Seed even when clients already exist

    Returns:
        True if data was written
    """
    if not force and await hub.clients.count() > 0:
        return False

    now = hub.clients.now()
    today = now.date()

    clients = [await hub.clients.add(data) for data in DEMO_CLIENTS]

    projects = []
    for client_index, data in DEMO_PROJECTS:
        fields = dict(data, client_id=clients[client_index].id)
        fields.setdefault("start_date", today - timedelta(days=120))
        fields.setdefault("deadline", today + timedelta(days=60))
        if fields["status"] == ProjectStatus.COMPLETED:
            fields["end_date"] = today - timedelta(days=50)
            fields["deadline"] = today - timedelta(days=45)
        projects.append(await hub.projects.add(fields))

    tasks = []
    for position, (project_index, data) in enumerate(DEMO_TASKS):
        fields = dict(
            data,
            project_id=projects[project_index].id,
            assigned_to=["user-1"] if position % 2 == 0 else ["user-1", "user-2"],
            created_by="user-1",
            due_date=today + timedelta(days=7 * (position - 2)),
        )
        tasks.append(await hub.tasks.add(fields))

    for task_index, days_ago, minutes, billable in DEMO_ENTRIES:
        task = tasks[task_index]
        project = next(p for p in projects if p.id == task.project_id)
        start = now - timedelta(days=days_ago, hours=3)
        await hub.time_entries.add({
            "task_id": task.id,
            "project_id": project.id,
            "description": task.title,
            "start_time": start,
            "end_time": start + timedelta(minutes=minutes),
            "duration": minutes,
            "billable": billable,
            "hourly_rate": project.hourly_rate or 0.0,
            "created_at": start,
        })

    return True
