"""Qbot: teacher-designed AI chatbots for classrooms."""
