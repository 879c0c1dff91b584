from . import curriculums, homework, lessons, skills, tasks, users

__all__ = ["curriculums", "homework", "lessons", "skills", "tasks", "users"]
