class ConversationError(Exception):
    """Base error for dashboard-driven conversation actions."""


class ConversationNotFoundError(ConversationError):
    def __init__(self, conversation_id: int):
        super().__init__("Conversation not found")
        self.conversation_id = conversation_id


class ConversationPausedError(ConversationError):
    def __init__(self, conversation_id: int):
        super().__init__("Conversation is paused for human support")
        self.conversation_id = conversation_id


class ConversationNotPausedError(ConversationError):
    def __init__(self, conversation_id: int):
        super().__init__("This conversation is not in human support mode")
        self.conversation_id = conversation_id


class EmptyMessageError(ConversationError):
    def __init__(self):
        super().__init__("Message content is required")


class TenantNotFoundError(Exception):
    def __init__(self, tenant_id: int):
        super().__init__(f"Tenant {tenant_id} not found")
        self.tenant_id = tenant_id


class InsufficientStockError(Exception):
    def __init__(self, product_id: int, requested: int):
        super().__init__("Insufficient stock")
        self.product_id = product_id
        self.requested = requested
