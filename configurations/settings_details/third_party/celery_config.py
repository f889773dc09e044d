from configurations.settings_details.env import env

# Redis broker, local by default
REDIS_HOST = env('REDIS_HOST', default='localhost')
REDIS_PORT = env('REDIS_PORT', default='6379')
REDIS_PASSWORD = env('REDIS_PASSWORD', default='')
REDIS_DB = env('REDIS_DB', default='0')

if REDIS_PASSWORD:
    _redis_url = f'redis://:{REDIS_PASSWORD}@{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}'
else:
    _redis_url = f'redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}'

CELERY_BROKER_URL = env('REDIS_URL', default=_redis_url)
CELERY_RESULT_BACKEND = env('REDIS_URL', default=_redis_url)

CELERY_ACCEPT_CONTENT = ['application/json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'

CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'

CELERY_TASK_ALWAYS_EAGER = env.bool('CELERY_TASK_ALWAYS_EAGER', default=False)
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TASK_IGNORE_RESULT = True

CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_WORKER_MAX_TASKS_PER_CHILD = 1000

CELERY_TASK_ACKS_LATE = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True

CELERY_RESULT_EXPIRES = 3600  # 1 hour

CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True
CELERY_BROKER_CONNECTION_MAX_RETRIES = 10

CELERY_TASK_ROUTES = {
    'configurations.tasks.dispatch_notification': {'queue': 'notifications'},
    'inventory.tasks.*': {'queue': 'inventory'},
}

CELERY_TASK_DEFAULT_QUEUE = 'default'
