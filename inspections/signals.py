from django.dispatch import Signal

# sent with job, stage and performed_by once a submission is saved
inspection_submitted = Signal()
