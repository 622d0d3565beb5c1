import logging
import os

from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework import status
from django.http import FileResponse

from . import services
from .config import RefreshConfig
from .exceptions import RefreshError
from .serializers import CountryListQuerySerializer, CountrySerializer

logger = logging.getLogger(__name__)

NOT_FOUND = {"error": "Country not found"}


@api_view(['POST'])
def refresh_countries(request):
    """
    POST /countries/refresh
    Fetch countries and exchange rates, then update or create cached data.
    Responds 503 when a feed is unreachable and 500 when storage fails.
    Records that individually failed to write are reported in ``failed``.
    """
    try:
        result = services.refresh_all(RefreshConfig.from_settings())
    except RefreshError as exc:
        return Response(exc.as_response_body(), status=exc.status_code)

    return Response(
        {
            "message": "Refresh successful",
            "total": result.total,
            "written": result.written,
            "failed": result.failed,
            "last_refreshed_at": result.last_refreshed_at.isoformat(),
        },
        status=status.HTTP_200_OK,
    )


@api_view(['GET'])
def list_countries(request):
    """
    GET /countries
    Filters: ?region=<region> ?currency=<code> (exact match)
    Sorting: ?sort=gdp_desc or ?sort=gdp_asc
    Default order is by id.
    """
    query = CountryListQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return Response(
            {"error": "Validation failed", "details": query.errors},
            status=status.HTTP_400_BAD_REQUEST,
        )

    countries = services.list_countries(**query.validated_data)
    return Response(CountrySerializer(countries, many=True).data)


@api_view(['GET', 'DELETE'])
def country_detail(request, name):
    """
    GET /countries/:name  -> the country, or 404
    DELETE /countries/:name -> delete and return the removed country, or 404
    """
    if request.method == 'GET':
        country = services.get_by_name(name)
        if country is None:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(CountrySerializer(country).data)

    country = services.delete_by_name(name)
    if country is None:
        return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
    logger.info("Deleted country %s", name)
    return Response({"message": "Country deleted", "country": CountrySerializer(country).data})


@api_view(['GET'])
def get_status(request):
    """GET /status -> { total_countries, last_refreshed_at } of the last refresh run."""
    return Response(services.get_status())


@api_view(['GET'])
def get_summary_image(request):
    """
    GET /countries/image
    Serve the summary image written by the last refresh, or 404 JSON.
    """
    path = RefreshConfig.from_settings().image_path
    if not os.path.exists(path):
        return Response({"error": "Summary image not found"}, status=status.HTTP_404_NOT_FOUND)
    return FileResponse(open(path, 'rb'), content_type='image/png')
