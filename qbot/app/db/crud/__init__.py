"""CRUD operations package.

- teacher.py: teacher accounts
- school_class.py: classes
- student.py: student roster and tokens
- chatbot.py: chatbots
- learning_goal.py: learning goals
- message.py: usage session lookups and messages
- goal_response.py: student goal responses
"""

from qbot.app.db.crud.teacher import (
    lookup_teacher_by_hash,
    get_teacher_by_id,
    create_teacher,
)

from qbot.app.db.crud.school_class import (
    list_classes,
    get_class_for_teacher,
    create_class,
    rename_class,
    delete_class,
)

from qbot.app.db.crud.student import (
    lookup_student_by_hash,
    get_student_by_id,
    get_student_by_number,
    get_student_for_teacher,
    list_students_for_teacher,
    list_student_ids_in_class,
    create_student,
    set_student_token,
    delete_student,
)

from qbot.app.db.crud.chatbot import (
    get_chatbot_by_id,
    get_chatbot_by_slug,
    list_chatbots_for_teacher,
    create_chatbot,
    update_chatbot,
    delete_chatbot,
)

from qbot.app.db.crud.learning_goal import (
    list_goals_for_chatbot,
    get_goal_for_teacher,
    create_goal,
    update_goal,
    delete_goal,
)

from qbot.app.db.crud.message import (
    get_usage_session,
    list_sessions_for_chatbot,
    create_message,
    list_messages_for_session,
)

from qbot.app.db.crud.goal_response import (
    upsert_goal_evaluation,
    mark_goals_pending,
    upsert_student_check,
    list_responses_for_student,
)

__all__ = [
    "lookup_teacher_by_hash",
    "get_teacher_by_id",
    "create_teacher",
    "list_classes",
    "get_class_for_teacher",
    "create_class",
    "rename_class",
    "delete_class",
    "lookup_student_by_hash",
    "get_student_by_id",
    "get_student_by_number",
    "get_student_for_teacher",
    "list_students_for_teacher",
    "list_student_ids_in_class",
    "create_student",
    "set_student_token",
    "delete_student",
    "get_chatbot_by_id",
    "get_chatbot_by_slug",
    "list_chatbots_for_teacher",
    "create_chatbot",
    "update_chatbot",
    "delete_chatbot",
    "list_goals_for_chatbot",
    "get_goal_for_teacher",
    "create_goal",
    "update_goal",
    "delete_goal",
    "get_usage_session",
    "list_sessions_for_chatbot",
    "create_message",
    "list_messages_for_session",
    "upsert_goal_evaluation",
    "mark_goals_pending",
    "upsert_student_check",
    "list_responses_for_student",
]
