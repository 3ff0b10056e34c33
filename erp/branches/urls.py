from django.urls import path
from .views import branch_list_create, branch_detail, branch_default

urlpatterns = [
    path('branches/', branch_list_create, name='branch-list-create'),
    path('branches/default/', branch_default, name='branch-default'),
    path('branches/<int:pk>/', branch_detail, name='branch-detail'),
]
