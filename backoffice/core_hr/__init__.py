"""Core HR module: the Employee model shared by attendance, leave and payroll."""

from backoffice.core_hr.models import Employee

__all__ = ["Employee"]
