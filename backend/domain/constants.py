"""
Domain constants used across services/routers.
"""

# Razorpay caps receipt strings at 40 characters
RECEIPT_MAX_LENGTH = 40
RECEIPT_PREFIX = "crs_"

# Signed payload separator: "{order_id}|{payment_id}"
SIGNATURE_SEPARATOR = "|"

MSG_ENROLLED = "Payment verified and enrollment created"
MSG_ALREADY_ENROLLED = "Already enrolled in this course"
MSG_FREE_ENROLLED = "Enrolled in free course"
