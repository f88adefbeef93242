from omnichat.models.tenant import Tenant
from omnichat.models.user import User
from omnichat.models.conversation import Conversation
from omnichat.models.message import Message
from omnichat.models.product import Product
from omnichat.models.service import Service
from omnichat.models.order import Order
from omnichat.models.appointment import Appointment
from omnichat.models.processed_message import ProcessedMessage
