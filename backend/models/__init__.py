from models.base import Base
from models.career import Career
from models.classroom import Classroom
from models.enrollment import Enrollment
from models.group import Group
from models.student import Student
from models.subject import Subject
from models.subject_registration import SubjectRegistration
from models.teacher import Teacher
from models.time_slot import TimeSlot
from models.user import User

__all__ = [
	"Base",
	"Career",
	"Classroom",
	"Enrollment",
	"Group",
	"Student",
	"Subject",
	"SubjectRegistration",
	"Teacher",
	"TimeSlot",
	"User",
]
