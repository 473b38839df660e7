# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.
# L'ordre suit les dépendances : tenants → users → students → classrooms → le reste.

from schoolconnect.models.tenant import Tenant, School  # noqa: F401  (doit précéder tout le reste)
from schoolconnect.models.user import User, RevokedToken  # noqa: F401
from schoolconnect.models.student import Student, ParentStudent  # noqa: F401
from schoolconnect.models.classroom import Classroom, Enrollment  # noqa: F401
from schoolconnect.models.announcement import Announcement, AnnouncementAudience  # noqa: F401
from schoolconnect.models.attendance import AttendanceRecord  # noqa: F401
from schoolconnect.models.messaging import (  # noqa: F401
    Conversation, ConversationParticipant, Message, MessageRead,
)
from schoolconnect.models.grading import GradeCategory, Assignment, AssignmentScore  # noqa: F401
from schoolconnect.models.form_request import FormRequest  # noqa: F401
from schoolconnect.models.progression import ProgressionSnapshot  # noqa: F401
from schoolconnect.models.subscription import Subscription  # noqa: F401
from schoolconnect.models.audit import AuditLog  # noqa: F401
