"""
Mail Service

Stateless transactional mail sender: validated JSON in, SMTP out.
Run with ``python run_mail_service.py``.
"""
