"""Shared constants."""

# Preset roles for marketing agencies
PRESET_ROLES = (
    "Paid Media Specialist",
    "Performance Marketer",
    "SEO Strategist",
    "Content Strategist",
    "Copywriter",
    "Designer",
    "Creative Director",
    "Developer",
    "Account Manager",
    "Project Manager",
)

# Internal projects for non-billable time tracking
INTERNAL_PROJECTS = (
    "Internal / Admin",
    "Team Meetings",
    "PTO / Time Off",
    "Business Development",
)

DEFAULT_WARNING_THRESHOLD = 0.8
DEFAULT_CRITICAL_THRESHOLD = 0.95
DEFAULT_CAPACITY_HOURS = 40

# Role given to members created by a bulk import
IMPORTED_MEMBER_ROLE = "Team Member"
