from shortener.models.schema.link import LinkEntry
from shortener.models.schema.otp import OtpEntry
from shortener.models.schema.user import UserEntry


class Databases:
    link = LinkEntry
    otp = OtpEntry
    user = UserEntry
