from django.contrib import admin

from .models import Country, RunMeta


@admin.register(Country)
class CountryAdmin(admin.ModelAdmin):
    list_display = ('name', 'region', 'currency_code', 'exchange_rate', 'estimated_gdp', 'last_refreshed_at')
    list_filter = ('region',)
    search_fields = ('name', 'capital', 'currency_code')


admin.site.register(RunMeta)
