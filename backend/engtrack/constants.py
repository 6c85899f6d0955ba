"""
Catalog defaults and tunables for the allocation engine.

The built-in project and team sets are used when no store is configured and
as the seed data for a fresh database.
"""

import enum
import os


class Category(str, enum.Enum):
    RD = "R&D"
    RD_SUPPORT = "R&D Support"
    MFG_SUPPORT = "MFG Support"
    LEAVE = "Leave"


class Role(str, enum.Enum):
    user = "user"
    manager = "manager"
    admin = "admin"


class UserStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"


DEFAULT_WEEKLY_CAPACITY = float(os.getenv("ENGTRACK_DEFAULT_CAPACITY", "40"))
LEAVE_HOURS_PER_DAY = float(os.getenv("ENGTRACK_LEAVE_HOURS_PER_DAY", "8"))
LOCK_WINDOW_WEEKS = int(os.getenv("ENGTRACK_LOCK_WINDOW_WEEKS", "2"))
# Fixed week-wrap modulus; ISO years with 53 weeks are not special-cased.
WEEKS_PER_YEAR = int(os.getenv("ENGTRACK_WEEKS_PER_YEAR", "52"))

MAX_LEAVE_DAYS = 7
ALLOCATION_TOLERANCE = 0.1


# (id, name, category)
DEFAULT_PROJECTS = [
    # R&D
    ("vadr", "VADR / MFC", Category.RD),
    ("x57", "X5.7", Category.RD),
    ("shotgun", "Shotgun", Category.RD),
    ("new_dagger", "New Dagger", Category.RD),
    ("new_rock", "New Rock", Category.RD),
    ("new_jakl", "New JAKL", Category.RD),
    ("new_ar", "New AR", Category.RD),
    ("new_aac", "New AAC", Category.RD),
    ("new_ak", "New AK", Category.RD),
    ("new_hr", "New H&R", Category.RD),
    ("new_dpms", "New DPMS", Category.RD),
    ("new_sabre", "New Sabre", Category.RD),
    # R&D Support
    ("dwg_cleanup", "DWG Cleanup", Category.RD_SUPPORT),
    ("project_mgmt", "Project MGMT", Category.RD_SUPPORT),
    ("testing_guns", "Testing Guns", Category.RD_SUPPORT),
    ("testing_ammo", "Testing Ammo", Category.RD_SUPPORT),
    ("training", "Training", Category.RD_SUPPORT),
    ("admin", "Admin", Category.RD_SUPPORT),
    # MFG Support
    ("dagger_support", "Dagger Support", Category.MFG_SUPPORT),
    ("rock_support", "Rock Support", Category.MFG_SUPPORT),
    ("ar_support", "AR Support", Category.MFG_SUPPORT),
    ("jakl_support", "JAKL Support", Category.MFG_SUPPORT),
    ("ak_support", "AK Support", Category.MFG_SUPPORT),
    ("sabre_support", "Sabre Support", Category.MFG_SUPPORT),
    ("hr_support", "H&R Support", Category.MFG_SUPPORT),
    ("ammo_support", "Ammo Support", Category.MFG_SUPPORT),
]

LEAVE_PROJECTS = [
    ("vacation", "Vacation", Category.LEAVE),
    ("sick", "Sick Leave", Category.LEAVE),
]

LEAVE_PROJECT_IDS = frozenset(pid for pid, _, _ in LEAVE_PROJECTS)

DEFAULT_USER_PROJECTS = ["new_dagger", "project_mgmt", "testing_guns"]

# (id, name, type)
DEFAULT_TEAMS = [
    ("t_npd", "New Product Development", "rd"),
    ("t_project", "Project Team", "rd"),
    ("t_pistol", "Pistol Team", "rd"),
    ("t_pistol_sus", "Pistol Sustaining", "rd"),
    ("t_rifle", "Rifle Team", "rd"),
    ("t_rifle_sus", "Rifle Sustaining", "rd"),
    ("t_cad", "CAD Team", "rd"),
    ("t_test", "Test Center", "support"),
]


class Scope(str, enum.Enum):
    department = "department"
    team = "team"
    user = "user"
