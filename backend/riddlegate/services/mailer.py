from flask import current_app
from flask_mail import Message

from riddlegate import mail


def send_otp_email(email: str, otp: str, subject: str = 'Verify Your Riddle Game Account') -> bool:
    """Send a verification code. Delivery problems are logged, not raised."""
    msg = Message(subject=subject, recipients=[email], body=f"Your OTP for Riddle Game is: {otp}")
    try:
        mail.send(msg)
    except Exception as exc:
        current_app.logger.error(f"[mail] could not send OTP to {email}: {exc}")
        return False
    current_app.logger.info(f"[mail] OTP sent to {email}")
    return True
