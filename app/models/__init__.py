from app.db.base_class import Base
from app.models.user import User
from app.models.short_link import ShortLink
from app.models.click_event import ClickEvent
