from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    CONTENT_CREATOR = "CONTENT_CREATOR"
    SEO_SPECIALIST = "SEO_SPECIALIST"


class AssetType(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    LINK = "LINK"
    CAROUSEL = "CAROUSEL"


class UploadType(str, Enum):
    SEO = "SEO"
    DOC = "DOC"


class AssetStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VisibilityLevel(str, Enum):
    UPLOADER_ONLY = "UPLOADER_ONLY"
    ADMIN_ONLY = "ADMIN_ONLY"
    COMPANY = "COMPANY"
    TEAM = "TEAM"
    ROLE = "ROLE"
    SELECTED_USERS = "SELECTED_USERS"
    PUBLIC = "PUBLIC"


class ShareTargetType(str, Enum):
    USER = "USER"
    ROLE = "ROLE"
    TEAM = "TEAM"


class ApprovalAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    DOWNLOAD = "DOWNLOAD"
    SHARE = "SHARE"
    VISIBILITY_CHANGE = "VISIBILITY_CHANGE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


class ResourceType(str, Enum):
    ASSET = "ASSET"
    USER = "USER"
    COMPANY = "COMPANY"
    APPROVAL = "APPROVAL"


class NotificationType(str, Enum):
    ASSET_UPLOADED = "ASSET_UPLOADED"
    ASSET_APPROVED = "ASSET_APPROVED"
    ASSET_REJECTED = "ASSET_REJECTED"
    ASSET_SHARED = "ASSET_SHARED"
    COMMENT_ADDED = "COMMENT_ADDED"
    SYSTEM_ALERT = "SYSTEM_ALERT"


class Platform(str, Enum):
    X = "X"
    LINKEDIN = "LINKEDIN"
    INSTAGRAM = "INSTAGRAM"
    META_ADS = "META_ADS"
    YOUTUBE = "YOUTUBE"
