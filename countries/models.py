from django.db import models


class Country(models.Model):
    # name — match key for refresh/update/delete; null for feed entries without one
    name = models.CharField(max_length=200, unique=True, null=True, blank=True)
    capital = models.CharField(max_length=200, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    # population — clamped to >= 0 before it gets here
    population = models.BigIntegerField(default=0)
    currency_code = models.CharField(max_length=10, null=True, blank=True, db_index=True)
    # exchange_rate and estimated_gdp are null together when no rate matched
    exchange_rate = models.FloatField(null=True, blank=True)
    estimated_gdp = models.FloatField(null=True, blank=True)
    # upstream flag values are not always well-formed URLs
    flag_url = models.CharField(max_length=500, null=True, blank=True)
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name_plural = 'countries'

    def __str__(self):
        return self.name or f'Country #{self.pk}'


class RunMeta(models.Model):
    """Singleton row (pk=1) describing the most recent refresh run."""

    SINGLETON_PK = 1

    total_countries = models.IntegerField(default=0)
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'run metadata'
        verbose_name_plural = 'run metadata'

    def __str__(self):
        return f'{self.total_countries} countries at {self.last_refreshed_at}'
