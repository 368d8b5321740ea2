"""Role-specific landing view.

Each role maps to one ``RoleView``: a greeting plus the sections (Courses,
Jobs, Payments) with the actions that role may take from each.
"""

from typing import Literal

from pydantic import BaseModel

from .models import Role

Tab = Literal["welcome", "courses", "jobs", "payments"]


class SectionAction(BaseModel):
    """A button on a landing section, pointing at the tab it opens."""
    label: str
    tab: Tab


class Section(BaseModel):
    """One landing section."""
    id: Tab
    title: str
    description: str
    actions: list[SectionAction]


class RoleView(BaseModel):
    """Everything the landing view shows for one role."""
    role: Role
    greeting: str
    sections: list[Section]


class DashboardResponse(BaseModel):
    """The caller's landing view and the tab they asked for."""
    active_tab: Tab
    view: RoleView


def _courses(*extra: SectionAction) -> Section:
    return Section(
        id="courses",
        title="Courses",
        description="Discover and learn from expert-led courses",
        actions=[SectionAction(label="Browse Courses", tab="courses"), *extra],
    )


def _jobs(*extra: SectionAction) -> Section:
    return Section(
        id="jobs",
        title="Jobs",
        description="Find your next career opportunity",
        actions=[SectionAction(label="Browse Jobs", tab="jobs"), *extra],
    )


_PAYMENTS = Section(
    id="payments",
    title="Payments",
    description="Manage your course purchases and receipts",
    actions=[SectionAction(label="View Payments", tab="payments")],
)


ROLE_VIEWS: dict[Role, RoleView] = {
    Role.learner: RoleView(
        role=Role.learner,
        greeting="Explore courses and job opportunities",
        sections=[_courses(), _jobs(), _PAYMENTS],
    ),
    Role.instructor: RoleView(
        role=Role.instructor,
        greeting="Manage your courses and create new content",
        sections=[_courses(SectionAction(label="Add Course", tab="courses")), _jobs(), _PAYMENTS],
    ),
    Role.employer: RoleView(
        role=Role.employer,
        greeting="Post job opportunities and find talent",
        sections=[_courses(), _jobs(SectionAction(label="Post Job", tab="jobs")), _PAYMENTS],
    ),
    Role.admin: RoleView(
        role=Role.admin,
        greeting="Oversee platform operations and approvals",
        sections=[_courses(), _jobs(), _PAYMENTS],
    ),
}


def view_for(role: Role) -> RoleView:
    """Return the landing view for a role."""
    return ROLE_VIEWS[role]
