"""
Tests for saved analyses, groups and the calculator endpoint.
"""
from rest_framework import status

from core.models import AnalysisGroup, PropertyAnalysis
from core.services.system_settings import update_system_settings
from core.tests.base import BaseAPITestCase
from core.tests.test_analysis_metrics import sample_inputs


class AnalysisAPITestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.analyses_url = f"{self.base_url}/analyses"
        self.groups_url = f"{self.base_url}/groups"
        self.owner = self.create_premium_owner(email='owner@test.com', seats=2)
        self.owner_client = self.client_for(self.owner)

    # ========== CREATE ==========

    def test_create_computes_results(self):
        response = self.owner_client.post(f"{self.analyses_url}/", {
            'name': 'Maple Court',
            'zip_code': '78701',
            'data': sample_inputs(),
        }, format='json')

        self.assert_response_success(response, status.HTTP_201_CREATED)
        self.assertEqual(response.data['cap_rate'], 0.096)
        self.assertEqual(response.data['purchase_price'], '1000000.00')
        self.assertEqual(response.data['results']['keyMetrics']['netOperatingIncome'], 96000)
        analysis = PropertyAnalysis.objects.get(pk=response.data['id'])
        self.assertEqual(analysis.user, self.owner)
        self.assertEqual(analysis.net_operating_income, 96000)

    def test_key_metrics_override(self):
        analysis = self.create_analysis(self.owner, results={'keyMetrics': {'capRate': 0.05}}, cap_rate=0.05)
        response = self.owner_client.patch(
            f"{self.analyses_url}/{analysis.id}/", {'key_metrics': {'capRate': 0.07}}, format='json'
        )
        self.assert_response_success(response)
        self.assertEqual(response.data['cap_rate'], 0.07)

    def test_free_user_cannot_save(self):
        response = self.user_client.post(f"{self.analyses_url}/", {'name': 'Nope'}, format='json')
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

    def test_trial_user_cannot_list_saved(self):
        trial_user = self.create_user(status='trial')
        response = self.client_for(trial_user).get(f"{self.analyses_url}/")
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

    def test_saving_disabled(self):
        update_system_settings({'saved_drafts_enabled': False}, updated_by='admin@test.com')
        response = self.owner_client.post(f"{self.analyses_url}/", {'name': 'Maple Court'}, format='json')
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Saving analyses is currently disabled')

    # ========== WORKSPACE SCOPING ==========

    def test_member_sees_workspace_analyses(self):
        self.add_team_member(self.owner, self.regular_user)
        self.create_analysis(self.owner, name='Owner Deal')
        self.create_analysis(self.regular_user, name='Member Deal')
        self.create_analysis(self.create_user(status='premium'), name='Stranger Deal')

        response = self.user_client.get(f"{self.analyses_url}/")

        self.assert_response_success(response)
        self.assert_pagination_response(response)
        names = {item['name'] for item in response.data['results']}
        self.assertEqual(names, {'Owner Deal', 'Member Deal'})

    def test_owner_edits_member_row_but_not_the_reverse(self):
        self.add_team_member(self.owner, self.regular_user)
        owner_row = self.create_analysis(self.owner, name='Owner Deal')
        member_row = self.create_analysis(self.regular_user, name='Member Deal')

        response = self.owner_client.patch(
            f"{self.analyses_url}/{member_row.id}/", {'is_favorite': True}, format='json'
        )
        self.assert_response_success(response)

        response = self.user_client.delete(f"{self.analyses_url}/{owner_row.id}/")
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

    def test_other_workspace_row_is_not_found(self):
        stranger_row = self.create_analysis(self.create_user(status='premium'))
        response = self.owner_client.get(f"{self.analyses_url}/{stranger_row.id}/")
        self.assert_response_error(response, status.HTTP_404_NOT_FOUND)

    # ========== FILTERS ==========

    def test_archived_hidden_by_default(self):
        self.create_analysis(self.owner, name='Active')
        self.create_analysis(self.owner, name='Old', is_archived=True)

        response = self.owner_client.get(f"{self.analyses_url}/")
        self.assertEqual([item['name'] for item in response.data['results']], ['Active'])

        response = self.owner_client.get(f"{self.analyses_url}/", {'isArchived': 'true'})
        self.assertEqual([item['name'] for item in response.data['results']], ['Old'])

    def test_cap_rate_range_and_sort(self):
        self.create_analysis(self.owner, name='Low', cap_rate=0.04)
        self.create_analysis(self.owner, name='Mid', cap_rate=0.06)
        self.create_analysis(self.owner, name='High', cap_rate=0.09)
        self.create_analysis(self.owner, name='Unknown')

        response = self.owner_client.get(f"{self.analyses_url}/", {
            'minCapRate': '0.05', 'sortBy': 'capRate', 'order': 'asc',
        })

        self.assert_response_success(response)
        self.assertEqual([item['name'] for item in response.data['results']], ['Mid', 'High'])

    def test_search_and_ungrouped(self):
        group = self.create_group(self.owner)
        self.create_analysis(self.owner, name='Maple Court', group=group)
        self.create_analysis(self.owner, name='Maple Heights')
        self.create_analysis(self.owner, name='Oak Plaza')

        response = self.owner_client.get(f"{self.analyses_url}/", {'search': 'maple', 'onlyUngrouped': 'true'})

        self.assertEqual([item['name'] for item in response.data['results']], ['Maple Heights'])

    # ========== CALCULATE ==========

    def test_calculate_for_trial_user(self):
        trial_user = self.create_user(status='trial')
        response = self.client_for(trial_user).post(
            f"{self.analyses_url}/calculate/", {'data': sample_inputs(), 'compare': True}, format='json'
        )
        self.assert_response_success(response)
        self.assertEqual(response.data['keyMetrics']['capRate'], 0.096)
        self.assertEqual(response.data['comparison']['market']['noi'], 9710)
        self.assertFalse(PropertyAnalysis.objects.exists())

    def test_calculate_for_free_user(self):
        response = self.user_client.post(
            f"{self.analyses_url}/calculate/", {'data': sample_inputs()}, format='json'
        )
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

    def test_calculate_disabled(self):
        update_system_settings({'analysis_enabled': False}, updated_by='admin@test.com')
        response = self.owner_client.post(
            f"{self.analyses_url}/calculate/", {'data': sample_inputs()}, format='json'
        )
        self.assert_response_error(response, status.HTTP_503_SERVICE_UNAVAILABLE)

        response = self.admin_client.post(
            f"{self.analyses_url}/calculate/", {'data': sample_inputs()}, format='json'
        )
        self.assert_response_success(response)

    def test_calculate_invalid_basis(self):
        response = self.owner_client.post(
            f"{self.analyses_url}/calculate/", {'data': sample_inputs(), 'basis': 'projected'}, format='json'
        )
        self.assert_validation_error(response, 'basis')

    # ========== GROUPS ==========

    def test_create_group_appends_sort_order(self):
        self.create_group(self.owner, name='First', sort_order=4)
        response = self.owner_client.post(f"{self.groups_url}/", {'name': 'Second'}, format='json')
        self.assert_response_success(response, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sort_order'], 5)
        self.assertEqual(response.data['color'], '#3B82F6')

    def test_free_user_cannot_create_group(self):
        response = self.user_client.post(f"{self.groups_url}/", {'name': 'Mine'}, format='json')
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

    def test_delete_group_ungroups_analyses(self):
        group = self.create_group(self.owner)
        self.create_analysis(self.owner, group=group)
        self.create_analysis(self.owner, name='Second', group=group)

        response = self.owner_client.get(f"{self.groups_url}/")
        self.assertEqual(response.data[0]['analysisCount'], 2)

        response = self.owner_client.delete(f"{self.groups_url}/{group.id}/")

        self.assert_response_success(response)
        self.assertEqual(response.data['ungroupedAnalyses'], 2)
        self.assertFalse(AnalysisGroup.objects.exists())
        self.assertEqual(PropertyAnalysis.objects.filter(group__isnull=True).count(), 2)

    def test_group_from_other_workspace_is_rejected(self):
        foreign = self.create_group(self.create_user(status='premium'))
        response = self.owner_client.post(f"{self.analyses_url}/", {
            'name': 'Maple Court', 'group': str(foreign.id),
        }, format='json')
        self.assert_validation_error(response, 'group')
