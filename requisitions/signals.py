from django.dispatch import Signal

# sent with requisition, previous_status and performed_by after every workflow action
requisition_changed = Signal()
