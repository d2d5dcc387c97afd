"""
Email Templates
Plain-text operator notifications and the MJML password reset message
"""

from typing import Optional

THEME = {
    "primary": "#16a34a",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}


def _lines(*lines: Optional[str]) -> str:
    """Join the non-empty lines"""
    return "\n".join(line for line in lines if line)


def format_french_date(value) -> str:
    """2025-06-30 -> 30/06/2025"""
    return value.strftime("%d/%m/%Y")


# ============================================================================
# OPERATOR NOTIFICATIONS
# ============================================================================


def booking_confirmed_email(booking, session_id: str) -> tuple[str, str]:
    """(subject, text) sent once a paid booking is confirmed"""
    when = booking.preferred_date.isoformat()
    if booking.preferred_time:
        when_subject = f"{when} à {booking.preferred_time}"
    else:
        when_subject = when

    subject = f"✅ RÉSERVATION CONFIRMÉE – {booking.name} – {when_subject}"
    text = _lines(
        "Type: RÉSERVATION CONFIRMÉE (Paiement reçu)",
        f"Nom: {booking.name}",
        f"Email: {booking.email}",
        f"Téléphone: {booking.phone}",
        f"Ville: {booking.city}",
        f"Adresse: {booking.address}" if booking.address else None,
        f"Code postal: {booking.postal_code}" if booking.postal_code else None,
        f"Service: {booking.service_type}",
        f"Nombre de bacs: {booking.bin_count}" if booking.bin_count else None,
        f"Date: {when}",
        f"Heure: {booking.preferred_time}" if booking.preferred_time else None,
        "---",
        "✅ Paiement reçu et réservation confirmée.",
        f"Session Stripe: {session_id}",
    )
    return subject, text


def refund_required_email(name: str, preferred_date: str, session_id: str) -> tuple[str, str]:
    """(subject, text) sent when a payment arrives for a date that is already full"""
    subject = "⚠️ Réservation annulée - Date complète"
    text = _lines(
        f"La réservation de {name} pour le {preferred_date} n'a pas pu être créée "
        "car la date est complète. Le paiement sera remboursé.",
        f"Session Stripe: {session_id}",
        "Le remboursement doit être effectué manuellement depuis le tableau de bord Stripe.",
    )
    return subject, text


def quote_request_email(data) -> tuple[str, str]:
    subject = f"Nouvelle demande de devis – {data.name}"
    text = _lines(
        "Type: Demande de devis",
        f"Nom: {data.name}",
        f"Email: {data.email}",
        f"Téléphone: {data.phone}",
        f"Ville: {data.city}",
        f"Service: {data.serviceType}",
        f"Nombre de bacs: {data.binCount}" if data.binCount else None,
        f"Entreprise: {data.company}" if data.company else None,
        f"Message:\n{data.message}" if data.message else None,
    )
    return subject, text


def contact_message_email(name: str, email: str, phone: Optional[str], message: str) -> tuple[str, str]:
    subject = f"💬 Nouveau message de contact – {name}"
    text = _lines(
        "Type: Message de contact",
        f"Nom: {name}",
        f"Email: {email}",
        f"Téléphone: {phone}" if phone else None,
        f"Message:\n{message}",
    )
    return subject, text


# ============================================================================
# MJML
# ============================================================================


def password_reset_template(reset_link: str, full_name: Optional[str] = None) -> str:
    """Password reset MJML template"""
    greeting = f"Bonjour {full_name}," if full_name else "Bonjour,"
    return f"""
    <mjml>
      <mj-head>
        <mj-title>Réinitialisation du mot de passe</mj-title>
        <mj-preview>Réinitialisez votre mot de passe administrateur</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 20px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              Réinitialisation du mot de passe
            </mj-text>
            <mj-text>{greeting}</mj-text>
            <mj-text>
              Vous avez demandé la réinitialisation de votre mot de passe. Ce lien est valide pendant 1 heure.
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="20px 40px 48px 40px">
          <mj-column>
            <mj-button
              href="{reset_link}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              Réinitialiser le mot de passe
            </mj-button>
          </mj-column>
        </mj-section>

        <mj-section background-color="{THEME['background']}" padding="16px 40px">
          <mj-column>
            <mj-text font-size="13px" color="{THEME['text_muted']}" padding="0">
              Si vous n'êtes pas à l'origine de cette demande, ignorez cet email. Votre mot de passe ne sera pas modifié.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """
