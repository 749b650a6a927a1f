from django.dispatch import Signal

# Sent once per payment, by the writer whose COMPLETED write won.
# sender: the PaymentReconciler; kwargs: payment, transaction_id
payment_confirmed = Signal()
