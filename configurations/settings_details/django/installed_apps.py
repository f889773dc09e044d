BASE_APPS = [
    'whitenoise.runserver_nostatic',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
]
THIRD_PARTY_APPS = [
    'rest_framework',
    "corsheaders",
    'rest_framework_simplejwt',
    "django_extensions",
    "django_celery_beat",
]
PROJECT_APPS = [
    'users.apps.UsersConfig',
    'company.apps.CompanyConfig',
    'customers.apps.CustomersConfig',
    'inventory.apps.InventoryConfig',
    'devices.apps.DevicesConfig',
    'requisitions.apps.RequisitionsConfig',
    'inspections.apps.InspectionsConfig',
    'jobs.apps.JobsConfig',
]
