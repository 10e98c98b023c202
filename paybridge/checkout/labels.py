"""
Libellés de la page de paiement, par langue (CHECKOUT_LOCALE).
Une seule page paramétrée: pas de route dupliquée par langue.
"""
from typing import Dict

DEFAULT_LOCALE = "en"

LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "title": "Secure payment",
        "customer_heading": "Your details",
        "first_name": "First name",
        "last_name": "Last name",
        "email": "Email",
        "phone": "Phone (optional)",
        "address": "Address",
        "postal_code": "Postal code",
        "city": "City",
        "country": "Country",
        "card_heading": "Card payment",
        "total": "Total",
        "form_incomplete": "Please fill in all required fields before paying.",
        "processing": "Verifying your payment...",
        "auth_screen": "Please complete the authentication with your bank.",
        "paid": "Payment confirmed, finalizing your order...",
        "failed": "Payment declined. Please try again.",
        "timeout": "We could not confirm the payment yet. If your card was charged, your order will be processed.",
        "error": "Payment error. Please try again.",
        "invalid": "Please check your card details.",
        "back_to_store": "Back to the store",
        "success_title": "Thank you for your order",
        "success_text": "Your payment has been received.",
        "failure_title": "Payment failed",
        "failure_text": "The payment could not be started. No amount was charged.",
        "reference": "Payment reference",
    },
    "fr": {
        "title": "Paiement sécurisé",
        "customer_heading": "Vos coordonnées",
        "first_name": "Prénom",
        "last_name": "Nom",
        "email": "E-mail",
        "phone": "Téléphone (facultatif)",
        "address": "Adresse",
        "postal_code": "Code postal",
        "city": "Ville",
        "country": "Pays",
        "card_heading": "Paiement par carte",
        "total": "Total",
        "form_incomplete": "Veuillez remplir tous les champs obligatoires avant de payer.",
        "processing": "Vérification du paiement en cours...",
        "auth_screen": "Veuillez terminer l'authentification auprès de votre banque.",
        "paid": "Paiement confirmé, finalisation de la commande...",
        "failed": "Paiement refusé. Veuillez réessayer.",
        "timeout": "Le paiement n'est pas encore confirmé. Si votre carte a été débitée, la commande sera traitée.",
        "error": "Erreur de paiement. Veuillez réessayer.",
        "invalid": "Veuillez vérifier les informations de votre carte.",
        "back_to_store": "Retour à la boutique",
        "success_title": "Merci pour votre commande",
        "success_text": "Votre paiement a bien été reçu.",
        "failure_title": "Échec du paiement",
        "failure_text": "Le paiement n'a pas pu démarrer. Aucun montant n'a été débité.",
        "reference": "Référence de paiement",
    },
    "nl": {
        "title": "Veilig betalen",
        "customer_heading": "Uw gegevens",
        "first_name": "Voornaam",
        "last_name": "Achternaam",
        "email": "E-mail",
        "phone": "Telefoon (optioneel)",
        "address": "Adres",
        "postal_code": "Postcode",
        "city": "Plaats",
        "country": "Land",
        "card_heading": "Betalen met kaart",
        "total": "Totaal",
        "form_incomplete": "Vul alle verplichte velden in voordat u betaalt.",
        "processing": "Uw betaling wordt gecontroleerd...",
        "auth_screen": "Rond de verificatie bij uw bank af.",
        "paid": "Betaling bevestigd, uw bestelling wordt afgerond...",
        "failed": "Betaling geweigerd. Probeer het opnieuw.",
        "timeout": "De betaling is nog niet bevestigd. Als uw kaart is belast, wordt uw bestelling verwerkt.",
        "error": "Betalingsfout. Probeer het opnieuw.",
        "invalid": "Controleer uw kaartgegevens.",
        "back_to_store": "Terug naar de winkel",
        "success_title": "Bedankt voor uw bestelling",
        "success_text": "Uw betaling is ontvangen.",
        "failure_title": "Betaling mislukt",
        "failure_text": "De betaling kon niet worden gestart. Er is niets afgeschreven.",
        "reference": "Betalingsreferentie",
    },
}


def labels_for(locale: str) -> Dict[str, str]:
    """Libellés de la langue demandée, anglais par défaut (langue inconnue)."""
    return LABELS.get((locale or "").lower()[:2], LABELS[DEFAULT_LOCALE])
